"""
turnip.ini configuration loader.

This module reads the optional turnip.ini file and merges it over the
built-in defaults. Every value has a default, so a run without any
configuration file builds the stock release.

Example turnip.ini:
    [release]
    version = 25.1.5
    version_code = 20250704
    min_api = 34

    [toolchain]
    ndk_name = android-ndk-r29-beta2
    ndk_sha256 = <hex digest, optional>

    [build]
    jobs = 8
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .build_options import BuildOptions
from .version_record import DEFAULT_UPDATE_JSON, VersionRecord, VersionRecordError

WORKDIR_ENV_VAR = "TURNIP_WORKDIR"

DEFAULT_RELEASE: Dict[str, str] = {
    "name": "Freedreno Turnip Vulkan Driver STABLE",
    "version": "25.1.5",
    "version_code": "20250704",
    "min_api": "34",
    "author": "V3KT0R-87",
    "description": "Turnip is an open-source vulkan driver for devices with Adreno 6xx-7xx GPUs.",
    "module_id": "turnip-mesa",
    "vendor": "Mesa3D",
    "update_json": DEFAULT_UPDATE_JSON,
    "bundle_prefix": "Turnip",
}

DEFAULT_NDK_NAME = "android-ndk-r29-beta2"
DEFAULT_NDK_URL = f"https://dl.google.com/android/repository/{DEFAULT_NDK_NAME}-linux.zip"
DEFAULT_SOURCE_NAME = "mesa-mesa-25.1.5"
DEFAULT_SOURCE_URL = (
    f"https://gitlab.freedesktop.org/mesa/mesa/-/archive/mesa-25.1.5/{DEFAULT_SOURCE_NAME}.zip"
)


class BuildConfigError(Exception):
    """Raised for unreadable or inconsistent turnip.ini configuration."""

    pass


@dataclass
class SourceSpec:
    """A downloadable archive and the directory it extracts to."""

    name: str
    url: str
    sha256: str = ""


@dataclass
class BuildConfig:
    """Complete configuration for one pipeline run."""

    release: VersionRecord
    ndk: SourceSpec = field(default_factory=lambda: SourceSpec(DEFAULT_NDK_NAME, DEFAULT_NDK_URL))
    source: SourceSpec = field(
        default_factory=lambda: SourceSpec(DEFAULT_SOURCE_NAME, DEFAULT_SOURCE_URL)
    )
    work_dir: Path = field(default_factory=lambda: Path.cwd() / "turnip_workdir")
    vulkan_drivers: str = "freedreno"
    freedreno_kmds: str = "kgsl"
    lto_mode: str = "thin"
    jobs: Optional[int] = None
    use_ccache: bool = True

    def build_options(self) -> BuildOptions:
        """Derive the Meson options; the target API level comes from the release."""
        return BuildOptions(
            platform_sdk_version=self.release.min_api,
            vulkan_drivers=self.vulkan_drivers,
            freedreno_kmds=self.freedreno_kmds,
            lto_mode=self.lto_mode,
        )

    @classmethod
    def load(cls, ini_path: Optional[Path] = None) -> "BuildConfig":
        """Load configuration from defaults, an optional INI file and the environment.

        Args:
            ini_path: Path to turnip.ini (optional)

        Returns:
            BuildConfig

        Raises:
            BuildConfigError: If the file is missing, unparsable or invalid
        """
        parser = configparser.ConfigParser(interpolation=None)

        if ini_path is not None:
            ini_path = Path(ini_path)
            if not ini_path.exists():
                raise BuildConfigError(f"Configuration file not found: {ini_path}")
            try:
                parser.read(ini_path, encoding="utf-8")
            except configparser.Error as e:
                raise BuildConfigError(f"Failed to parse {ini_path}: {e}") from e

        release_values = dict(DEFAULT_RELEASE)
        if parser.has_section("release"):
            release_values.update({k: v.strip() for k, v in parser["release"].items()})

        try:
            release = VersionRecord.from_mapping(release_values)
        except VersionRecordError as e:
            raise BuildConfigError(str(e)) from e

        config = cls(release=release)

        if parser.has_section("toolchain"):
            section = parser["toolchain"]
            config.ndk = SourceSpec(
                name=section.get("ndk_name", config.ndk.name),
                url=section.get("ndk_url", config.ndk.url),
                sha256=section.get("ndk_sha256", config.ndk.sha256).strip(),
            )

        if parser.has_section("source"):
            section = parser["source"]
            config.source = SourceSpec(
                name=section.get("name", config.source.name),
                url=section.get("url", config.source.url),
                sha256=section.get("sha256", config.source.sha256).strip(),
            )

        if parser.has_section("build"):
            section = parser["build"]
            config.vulkan_drivers = section.get("vulkan_drivers", config.vulkan_drivers)
            config.freedreno_kmds = section.get("freedreno_kmds", config.freedreno_kmds)
            config.lto_mode = section.get("lto_mode", config.lto_mode)
            try:
                if "jobs" in section:
                    config.jobs = section.getint("jobs")
                if "use_ccache" in section:
                    config.use_ccache = section.getboolean("use_ccache")
            except ValueError as e:
                raise BuildConfigError(f"Invalid [build] value: {e}") from e
            if "work_dir" in section:
                config.work_dir = Path(section["work_dir"]).expanduser()

        # Environment variable beats the file
        workdir_env = os.environ.get(WORKDIR_ENV_VAR)
        if workdir_env:
            config.work_dir = Path(workdir_env).expanduser()

        config.work_dir = config.work_dir.resolve()
        return config


def check_release_consistency(options: BuildOptions, release: VersionRecord) -> None:
    """Ensure the configured target API level matches the installer minimum.

    Raises:
        BuildConfigError: If the two values differ
    """
    if options.platform_sdk_version != release.min_api:
        raise BuildConfigError(
            f"Target API level {options.platform_sdk_version} does not match the "
            f"release minimum API {release.min_api}"
        )
