"""
Pytest configuration for the turnipkit test suite.

The --full flag enables integration tests, which need a real Android NDK,
meson and ninja (see tests/integration/).
"""

import pytest

from turnipkit.config import VersionRecord
from turnipkit.packages import BuildMachine
from turnipkit.packages.toolchain_binaries import NdkBinaryFinder


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Drop the default 'not integration' marker filter when --full is given."""
    if config.getoption("--full"):
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            config.option.markexpr = ""


@pytest.fixture
def release():
    """Release metadata used throughout the tests."""
    return VersionRecord(
        name="X",
        version="1.2.3",
        version_code=5,
        min_api=34,
        author="A",
        description="D",
        update_json="https://example.com/update.json",
    )


@pytest.fixture
def build_machine():
    return BuildMachine(system="linux", cpu_family="x86_64", cpu="x86_64", endian="little")


@pytest.fixture
def fake_ndk(tmp_path, build_machine):
    """An NDK-shaped directory with empty stand-ins for the API 34 binaries."""
    ndk_root = tmp_path / "android-ndk-test"
    finder = NdkBinaryFinder(ndk_root, build_machine.ndk_host_tag)
    finder.bin_dir.mkdir(parents=True)
    for name in finder.required_binaries(34):
        binary = finder.bin_dir / name
        binary.write_text("#!/bin/sh\n")
        binary.chmod(0o755)
    return ndk_root


@pytest.fixture
def fake_artifact(tmp_path):
    """A non-empty stand-in for libvulkan_freedreno.so."""
    artifact = tmp_path / "libvulkan_freedreno.so"
    artifact.write_bytes(b"\x7fELF" + b"\x00" * 60)
    return artifact
