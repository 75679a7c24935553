"""
Meson project options for the Turnip driver build.

The option set is fixed apart from the target API level and the driver
selection; it is passed verbatim to `meson setup`.
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class BuildOptions:
    """Options passed to the Meson configure step as -D<key>=<value>."""

    platform_sdk_version: int
    buildtype: str = "release"
    platforms: str = "android"
    android_stub: bool = True
    gallium_drivers: str = ""
    vulkan_drivers: str = "freedreno"
    freedreno_kmds: str = "kgsl"
    lto: bool = True
    lto_mode: str = "thin"
    egl: str = "disabled"
    strip: bool = True

    @staticmethod
    def _meson_bool(value: bool) -> str:
        return "true" if value else "false"

    def to_meson_args(self) -> List[str]:
        """Render the options as Meson command-line arguments.

        Returns:
            List of -D arguments in a stable order
        """
        return [
            f"-Dbuildtype={self.buildtype}",
            f"-Dplatforms={self.platforms}",
            f"-Dplatform-sdk-version={self.platform_sdk_version}",
            f"-Dandroid-stub={self._meson_bool(self.android_stub)}",
            f"-Dgallium-drivers={self.gallium_drivers}",
            f"-Dvulkan-drivers={self.vulkan_drivers}",
            f"-Dfreedreno-kmds={self.freedreno_kmds}",
            f"-Db_lto={self._meson_bool(self.lto)}",
            f"-Db_lto_mode={self.lto_mode}",
            f"-Degl={self.egl}",
            f"-Dstrip={self._meson_bool(self.strip)}",
        ]
