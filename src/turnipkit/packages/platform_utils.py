"""Build-machine Detection Utilities.

This module describes the machine running the build, both for the Meson
native file ([build_machine]) and for picking the NDK prebuilt directory.

Supported build machines:
    - Linux: x86_64, aarch64
    - macOS: x86_64, arm64 (the NDK ships a single darwin-x86_64 tree)
"""

import platform
import sys
from dataclasses import dataclass


class PlatformError(Exception):
    """Raised when the build machine is not supported."""

    pass


@dataclass(frozen=True)
class BuildMachine:
    """Meson machine attributes of the build machine."""

    system: str
    cpu_family: str
    cpu: str
    endian: str

    @property
    def ndk_host_tag(self) -> str:
        """Directory name under toolchains/llvm/prebuilt/ for this machine."""
        if self.system == "darwin":
            # Universal binaries live under the x86_64 tag
            return "darwin-x86_64"
        return f"{self.system}-{self.cpu_family}"


class PlatformDetector:
    """Detects the current build machine."""

    @staticmethod
    def detect_build_machine() -> BuildMachine:
        """Detect the build machine for the Meson native file.

        Returns:
            BuildMachine with Meson-style system/cpu_family/cpu/endian values

        Raises:
            PlatformError: If the platform cannot host the Android NDK
        """
        system = platform.system().lower()
        machine = platform.machine().lower()

        if system not in ("linux", "darwin"):
            raise PlatformError(f"Unsupported build platform: {system} {machine}")

        if machine in ("x86_64", "amd64"):
            cpu_family = "x86_64"
            cpu = "x86_64"
        elif machine in ("aarch64", "arm64"):
            cpu_family = "aarch64"
            cpu = machine
        else:
            raise PlatformError(f"Unsupported build architecture: {system} {machine}")

        return BuildMachine(
            system=system,
            cpu_family=cpu_family,
            cpu=cpu,
            endian=sys.byteorder,
        )
