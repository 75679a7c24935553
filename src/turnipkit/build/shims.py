"""Compiler shims and the subprocess environment for external build tools.

Some Mesa build steps call plain `cc`/`c++`. The shims directory points those
names at the NDK clang, and build_environment() returns the environment the
external tools run with. os.environ itself is never modified.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Mapping, Optional

SHIM_DIR_NAME = "fake-cc"

SHIM_TARGETS = {
    "cc": "clang",
    "c++": "clang++",
}

TOOL_VARIABLES = {
    "CC": "clang",
    "CXX": "clang++",
    "AR": "llvm-ar",
    "RANLIB": "llvm-ranlib",
    "STRIP": "llvm-strip",
    "OBJDUMP": "llvm-objdump",
    "OBJCOPY": "llvm-objcopy",
    "LDFLAGS": "-fuse-ld=lld",
}


class ShimError(Exception):
    """Raised when the compiler shims cannot be created."""

    pass


class CompilerShims:
    """Owns the cc/c++ symlink directory inside the working directory."""

    def __init__(self, work_dir: Path):
        self.shim_dir = Path(work_dir) / SHIM_DIR_NAME

    def create(self, ndk_bin_dir: Path) -> Path:
        """Create cc/c++ symlinks to the NDK clang drivers.

        Returns:
            The shim directory

        Raises:
            ShimError: If the links cannot be created
        """
        try:
            self.shim_dir.mkdir(parents=True, exist_ok=True)
            for name, target in SHIM_TARGETS.items():
                link = self.shim_dir / name
                if link.is_symlink() or link.exists():
                    link.unlink()
                link.symlink_to(Path(ndk_bin_dir) / target)
        except OSError as e:
            raise ShimError(f"Failed to create compiler shims in {self.shim_dir}: {e}") from e

        logging.debug(f"Created compiler shims in {self.shim_dir}")
        return self.shim_dir

    def remove(self) -> None:
        """Remove the shim directory. Safe to call repeatedly."""
        if self.shim_dir.is_symlink():
            self.shim_dir.unlink()
        elif self.shim_dir.exists():
            shutil.rmtree(self.shim_dir)


def build_environment(
    shim_dir: Path,
    ndk_bin_dir: Path,
    base_env: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Return the environment for meson/ninja.

    Args:
        shim_dir: Directory holding the cc/c++ shims
        ndk_bin_dir: NDK prebuilt bin directory
        base_env: Environment to start from (defaults to a copy of os.environ)

    Returns:
        New environment dict with shims and NDK tools first on PATH
    """
    env = dict(os.environ if base_env is None else base_env)
    env.update(TOOL_VARIABLES)
    path_entries = [str(shim_dir), str(ndk_bin_dir)]
    if env.get("PATH"):
        path_entries.append(env["PATH"])
    env["PATH"] = os.pathsep.join(path_entries)
    return env
