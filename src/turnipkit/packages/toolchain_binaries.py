"""NDK Toolchain Binary Utilities.

This module knows how Android NDK binaries are named and where they live.

Binary Naming Conventions:
    - Target compilers embed the API level:
      aarch64-linux-android34-clang, aarch64-linux-android34-clang++
    - Target-neutral LLVM tools: llvm-ar, llvm-strip, ld.lld, clang, clang++

Directory Structure:
    <ndk_root>/toolchains/llvm/prebuilt/<host_tag>/bin/
"""

from pathlib import Path
from typing import List, Tuple

TARGET_TRIPLE = "aarch64-linux-android"


class BinaryNotFoundError(Exception):
    """Raised when a required NDK binary is not found."""

    pass


def target_compiler_name(api_level: int, cplusplus: bool = False) -> str:
    """Return the API-specific compiler wrapper name.

    Args:
        api_level: Android API level the compiler targets
        cplusplus: Whether to return the C++ driver name

    Returns:
        e.g. 'aarch64-linux-android34-clang++'
    """
    suffix = "clang++" if cplusplus else "clang"
    return f"{TARGET_TRIPLE}{api_level}-{suffix}"


class NdkBinaryFinder:
    """Finds and verifies binaries inside an extracted NDK."""

    HOST_TOOLS = ["clang", "clang++", "llvm-ar", "llvm-strip", "ld.lld"]

    def __init__(self, ndk_root: Path, host_tag: str):
        """Initialize the binary finder.

        Args:
            ndk_root: Root of the extracted NDK (contains toolchains/)
            host_tag: Prebuilt host directory name (e.g. 'linux-x86_64')
        """
        self.ndk_root = Path(ndk_root)
        self.host_tag = host_tag

    @property
    def bin_dir(self) -> Path:
        return self.ndk_root / "toolchains" / "llvm" / "prebuilt" / self.host_tag / "bin"

    def binary_path(self, name: str) -> Path:
        return self.bin_dir / name

    def required_binaries(self, api_level: int) -> List[str]:
        """Names of every binary a build for api_level invokes."""
        return [
            target_compiler_name(api_level),
            target_compiler_name(api_level, cplusplus=True),
            *self.HOST_TOOLS,
        ]

    def verify_required_binaries(self, api_level: int) -> Tuple[bool, List[str]]:
        """Check that all binaries for api_level exist.

        Returns:
            Tuple of (all_found, missing_binaries)
        """
        missing = [
            name for name in self.required_binaries(api_level)
            if not self.binary_path(name).is_file()
        ]
        return len(missing) == 0, missing

    def verify_installation(self, api_level: int) -> bool:
        """Verify the NDK can build for api_level.

        Raises:
            BinaryNotFoundError: If the bin directory or binaries are missing
        """
        if not self.bin_dir.is_dir():
            raise BinaryNotFoundError(f"NDK prebuilt directory not found: {self.bin_dir}")

        all_found, missing = self.verify_required_binaries(api_level)
        if not all_found:
            raise BinaryNotFoundError(
                f"NDK installation incomplete for API {api_level}. "
                f"Missing binaries: {', '.join(missing)}"
            )
        return True
