"""
Package metadata templates.

Everything written into the two package trees is rendered here from a
VersionRecord. The installer scripts run later on the device under the
Magisk/KernelSU installer; their version gates are emitted, not evaluated.
"""

import json
import shlex
from typing import Dict

from ..config import VersionRecord

MANIFEST_SCHEMA_VERSION = 1

# Oldest Magisk accepted by update-binary
MAGISK_MIN_VERSION_CODE = 25200
MAGISK_MIN_VERSION_LABEL = "v25.2+"

ANDROID_RELEASES: Dict[int, str] = {
    24: "7.0",
    25: "7.1",
    26: "8.0",
    27: "8.1",
    28: "9",
    29: "10",
    30: "11",
    31: "12",
    32: "12L",
    33: "13",
    34: "14",
    35: "15",
    36: "16",
}

GPU_CACHE_CLEAR = """\
find /data/user_de/*/*/*cache/* -iname "*shader*" -exec rm -rf {} +
find /data/data/* -iname "*shader*" -exec rm -rf {} +
find /data/data/* -iname "*graphitecache*" -exec rm -rf {} +
find /data/data/* -iname "*gpucache*" -exec rm -rf {} +
find /data_mirror/data*/*/*/*/* -iname "*shader*" -exec rm -rf {} +
find /data_mirror/data*/*/*/*/* -iname "*graphitecache*" -exec rm -rf {} +
find /data_mirror/data*/*/*/*/* -iname "*gpucache*" -exec rm -rf {} +
"""

UPDATER_SCRIPT = "#MAGISK\n"


def android_release_name(api_level: int) -> str:
    """Human name for an API level, e.g. 34 -> 'Android 14'."""
    release = ANDROID_RELEASES.get(api_level)
    if release is None:
        return f"Android API {api_level}"
    return f"Android {release}"


def render_update_binary(
    min_version_code: int = MAGISK_MIN_VERSION_CODE,
    min_version_label: str = MAGISK_MIN_VERSION_LABEL,
) -> str:
    """Magisk module installer bootstrap (META-INF/.../update-binary)."""
    banner = f" Please install Magisk {min_version_label}! "
    rule = "*" * len(banner)
    return f"""\
#!/sbin/sh

#################
# Initialization
#################

umask 022

# echo before loading util_functions
ui_print() {{ echo "$1"; }}

require_new_magisk() {{
  ui_print "{rule}"
  ui_print "{banner}"
  ui_print "{rule}"
  exit 1
}}

#########################
# Load util_functions.sh
#########################

OUTFD=$2
ZIPFILE=$3

mount /data 2>/dev/null

[ -f /data/adb/magisk/util_functions.sh ] || require_new_magisk
. /data/adb/magisk/util_functions.sh
[ $MAGISK_VER_CODE -lt {min_version_code} ] && require_new_magisk

install_module
exit 0
"""


def render_uninstall() -> str:
    """Script run by the installer when the module is removed."""
    return GPU_CACHE_CLEAR


def render_customize(record: VersionRecord, library_path: str) -> str:
    """Install-time script: API gate, permissions, cache clearing.

    Record text is shell-quoted; it is never expanded on the device.

    Args:
        record: Release metadata
        library_path: Library path relative to the module root
    """
    title = shlex.quote(record.name)
    byline = shlex.quote(f"by {record.author}")
    abort_message = shlex.quote(
        f"{android_release_name(record.min_api)} is now required! Aborting ..."
    )
    return f"""\
MODVER=`grep_prop version $MODPATH/module.prop`
MODVERCODE=`grep_prop versionCode $MODPATH/module.prop`

ui_print ""
ui_print "Version=$MODVER "
ui_print "MagiskVersion=$MAGISK_VER"
ui_print ""
ui_print {title}
ui_print {byline}
ui_print ""
sleep 1.25

ui_print ""
ui_print "Checking Device info ..."
sleep 1.25

[ $(getprop ro.system.build.version.sdk) -lt {record.min_api} ] && echo {abort_message} && abort
echo ""
echo "Everything looks fine .... proceeding"
ui_print ""
ui_print "Installing Driver Please Wait ..."
ui_print ""

sleep 1.25
set_perm_recursive $MODPATH/system 0 0 0755 0644
set_perm $MODPATH/{library_path} 0 0 0644

ui_print ""
ui_print " Cleaning GPU Cache ... Please wait!"
{GPU_CACHE_CLEAR}
ui_print ""
ui_print "- Gpu Cache Cleared ..."
ui_print ""

ui_print "Driver installed Successfully"
sleep 1.25

ui_print ""
ui_print "All done, Please REBOOT device"
ui_print ""
"""


def render_module_prop(record: VersionRecord) -> str:
    """Flat key=value module descriptor."""
    entries = [
        ("id", record.module_id),
        ("name", record.name),
        ("version", record.version),
        ("versionCode", str(record.version_code)),
        ("author", record.author),
        ("description", record.description),
        ("updateJson", record.update_json),
    ]
    return "".join(f"{key}={value}\n" for key, value in entries)


def manifest_fields(record: VersionRecord, library_name: str) -> Dict[str, object]:
    """Emulator manifest content in its fixed key order."""
    return {
        "schemaVersion": MANIFEST_SCHEMA_VERSION,
        "name": record.name,
        "description": record.description,
        "author": record.author,
        "packageVersion": str(record.version_code),
        "vendor": record.vendor,
        "driverVersion": record.version,
        "minApi": record.min_api,
        "libraryName": library_name,
    }


def render_manifest(record: VersionRecord, library_name: str) -> str:
    """meta.json for emulator driver loaders."""
    return json.dumps(manifest_fields(record, library_name), indent=2, ensure_ascii=False) + "\n"
