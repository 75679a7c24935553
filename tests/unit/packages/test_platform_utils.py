"""Unit tests for build machine detection."""

from unittest.mock import patch

import pytest

from turnipkit.packages import BuildMachine, PlatformDetector, PlatformError


class TestPlatformDetector:
    def test_linux_x86_64(self):
        with patch("platform.system", return_value="Linux"), \
                patch("platform.machine", return_value="x86_64"):
            machine = PlatformDetector.detect_build_machine()
        assert machine.system == "linux"
        assert machine.cpu_family == "x86_64"
        assert machine.ndk_host_tag == "linux-x86_64"

    def test_macos_arm64_uses_x86_64_prebuilts(self):
        with patch("platform.system", return_value="Darwin"), \
                patch("platform.machine", return_value="arm64"):
            machine = PlatformDetector.detect_build_machine()
        assert machine.cpu_family == "aarch64"
        assert machine.ndk_host_tag == "darwin-x86_64"

    def test_windows_unsupported(self):
        with patch("platform.system", return_value="Windows"), \
                patch("platform.machine", return_value="AMD64"):
            with pytest.raises(PlatformError, match="Unsupported build platform"):
                PlatformDetector.detect_build_machine()

    def test_unknown_architecture(self):
        with patch("platform.system", return_value="Linux"), \
                patch("platform.machine", return_value="riscv64"):
            with pytest.raises(PlatformError, match="architecture"):
                PlatformDetector.detect_build_machine()

    def test_host_tag_for_linux_arm(self):
        machine = BuildMachine(system="linux", cpu_family="aarch64", cpu="aarch64", endian="little")
        assert machine.ndk_host_tag == "linux-aarch64"
