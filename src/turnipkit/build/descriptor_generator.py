"""Meson Machine File Generation.

This module binds abstract build roles to concrete NDK binaries and writes
the two Meson machine files a cross build needs.

Design:
    - ToolchainDescriptor / NativeDescriptor are frozen values, passed by
      parameter instead of exported as environment variables
    - Target compiler names are computed from the API level, never hardcoded
    - Rendering is pure; the generator only adds the file writes
    - No compiler is executed and no binary existence is checked here
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

from ..packages.platform_utils import BuildMachine
from ..packages.toolchain_binaries import NdkBinaryFinder, target_compiler_name

CROSS_FILE_NAME = "android-aarch64.txt"
NATIVE_FILE_NAME = "native.txt"

CXX_ARGS = (
    "--start-no-unused-arguments",
    "-fno-exceptions",
    "-fno-unwind-tables",
    "-fno-asynchronous-unwind-tables",
    "-static-libstdc++",
    "--end-no-unused-arguments",
    "-Wno-error=c++11-narrowing",
)

MesonValue = Union[str, Sequence[str]]


class DescriptorError(Exception):
    """Raised when a machine file cannot be written."""

    pass


def meson_literal(value: MesonValue) -> str:
    """Format a string or list of strings as a Meson literal."""
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"
    return "[" + ", ".join(meson_literal(item) for item in value) + "]"


def render_sections(sections: Dict[str, Dict[str, MesonValue]]) -> str:
    lines = []
    for title, entries in sections.items():
        if lines:
            lines.append("")
        lines.append(f"[{title}]")
        for key, value in entries.items():
            lines.append(f"{key} = {meson_literal(value)}")
    return "\n".join(lines) + "\n"


def _with_launcher(launcher: Optional[str], command: Sequence[str]) -> Tuple[str, ...]:
    return (launcher, *command) if launcher else tuple(command)


@dataclass(frozen=True)
class ToolchainDescriptor:
    """Cross toolchain for the Android target."""

    archiver: Path
    c_compiler: Path
    cpp_compiler: Path
    linker: Path
    stripper: Path
    pkg_config: Tuple[str, ...]
    cpp_args: Tuple[str, ...] = CXX_ARGS
    launcher: Optional[str] = None
    system: str = "android"
    cpu_family: str = "aarch64"
    cpu: str = "armv8"
    endian: str = "little"

    def roles(self) -> Dict[str, MesonValue]:
        """Abstract role name -> command."""
        return {
            "archiver": str(self.archiver),
            "c-compiler": str(self.c_compiler),
            "c++-compiler": str(self.cpp_compiler),
            "linker": str(self.linker),
            "stripper": str(self.stripper),
            "pkg-config-wrapper": self.pkg_config,
        }

    def render(self) -> str:
        return render_sections({
            "binaries": {
                "ar": str(self.archiver),
                "c": _with_launcher(self.launcher, [str(self.c_compiler)]),
                "cpp": _with_launcher(self.launcher, [str(self.cpp_compiler), *self.cpp_args]),
                "c_ld": str(self.linker),
                "cpp_ld": str(self.linker),
                "strip": str(self.stripper),
                "pkg-config": self.pkg_config,
            },
            "host_machine": {
                "system": self.system,
                "cpu_family": self.cpu_family,
                "cpu": self.cpu,
                "endian": self.endian,
            },
        })


@dataclass(frozen=True)
class NativeDescriptor:
    """Build-machine toolchain for code generators that run during the build."""

    machine: BuildMachine
    c_compiler: str = "clang"
    cpp_compiler: str = "clang++"
    archiver: str = "llvm-ar"
    stripper: str = "llvm-strip"
    linker: str = "ld.lld"
    launcher: Optional[str] = None

    def render(self) -> str:
        return render_sections({
            "binaries": {
                "c": _with_launcher(self.launcher, [self.c_compiler]),
                "cpp": _with_launcher(self.launcher, [self.cpp_compiler]),
                "ar": self.archiver,
                "strip": self.stripper,
                "c_ld": self.linker,
                "cpp_ld": self.linker,
            },
            "build_machine": {
                "system": self.machine.system,
                "cpu_family": self.machine.cpu_family,
                "cpu": self.machine.cpu,
                "endian": self.machine.endian,
            },
        })


@dataclass(frozen=True)
class DescriptorSet:
    """The pair of machine files written for one run."""

    cross: ToolchainDescriptor
    native: NativeDescriptor
    cross_file: Path
    native_file: Path
    api_level: int


class ToolchainDescriptorGenerator:
    """Creates and writes the cross and native machine files."""

    def __init__(self, ndk_root: Path, build_machine: BuildMachine):
        """
        Args:
            ndk_root: Root of the extracted NDK
            build_machine: Machine running the build
        """
        self.ndk_root = Path(ndk_root)
        self.build_machine = build_machine
        self.finder = NdkBinaryFinder(self.ndk_root, build_machine.ndk_host_tag)

    def cross_descriptor(self, api_level: int, launcher: Optional[str] = None) -> ToolchainDescriptor:
        bin_dir = self.finder.bin_dir
        return ToolchainDescriptor(
            archiver=bin_dir / "llvm-ar",
            c_compiler=bin_dir / target_compiler_name(api_level),
            cpp_compiler=bin_dir / target_compiler_name(api_level, cplusplus=True),
            linker=bin_dir / "ld.lld",
            stripper=bin_dir / "llvm-strip",
            pkg_config=(
                "env",
                f"PKG_CONFIG_LIBDIR={self.ndk_root / 'pkg-config'}",
                "/usr/bin/pkg-config",
            ),
            launcher=launcher,
        )

    def native_descriptor(self, launcher: Optional[str] = None) -> NativeDescriptor:
        return NativeDescriptor(machine=self.build_machine, launcher=launcher)

    def generate(
        self,
        api_level: int,
        dest_dir: Path,
        launcher: Optional[str] = None,
    ) -> DescriptorSet:
        """Write both machine files into dest_dir.

        Args:
            api_level: Target Android API level
            dest_dir: Directory receiving the machine files
            launcher: Optional compiler launcher (e.g. 'ccache')

        Returns:
            DescriptorSet describing what was written

        Raises:
            DescriptorError: If either file cannot be written
        """
        cross = self.cross_descriptor(api_level, launcher)
        native = self.native_descriptor(launcher)

        dest_dir = Path(dest_dir)
        cross_file = dest_dir / CROSS_FILE_NAME
        native_file = dest_dir / NATIVE_FILE_NAME

        print("Creating Meson cross file...")
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            cross_file.write_text(cross.render(), encoding="utf-8")
            native_file.write_text(native.render(), encoding="utf-8")
        except OSError as e:
            raise DescriptorError(f"Failed to write machine files in {dest_dir}: {e}") from e

        return DescriptorSet(
            cross=cross,
            native=native,
            cross_file=cross_file,
            native_file=native_file,
            api_level=api_level,
        )
