"""Unit tests for NDK binary naming and lookup."""

import pytest

from turnipkit.packages import BinaryNotFoundError, NdkBinaryFinder, target_compiler_name


class TestTargetCompilerName:
    @pytest.mark.parametrize("api", [24, 33, 34, 35])
    def test_api_level_embedded(self, api):
        assert target_compiler_name(api) == f"aarch64-linux-android{api}-clang"
        assert target_compiler_name(api, cplusplus=True) == f"aarch64-linux-android{api}-clang++"


class TestNdkBinaryFinder:
    def test_bin_dir_layout(self, tmp_path):
        finder = NdkBinaryFinder(tmp_path / "ndk", "linux-x86_64")
        assert finder.bin_dir == tmp_path / "ndk" / "toolchains" / "llvm" / "prebuilt" / "linux-x86_64" / "bin"

    def test_verify_installation_success(self, fake_ndk):
        finder = NdkBinaryFinder(fake_ndk, "linux-x86_64")
        assert finder.verify_installation(34) is True

    def test_verify_installation_wrong_api(self, fake_ndk):
        finder = NdkBinaryFinder(fake_ndk, "linux-x86_64")
        all_found, missing = finder.verify_required_binaries(35)
        assert not all_found
        assert missing == ["aarch64-linux-android35-clang", "aarch64-linux-android35-clang++"]
        with pytest.raises(BinaryNotFoundError, match="API 35"):
            finder.verify_installation(35)

    def test_verify_installation_missing_bin_dir(self, tmp_path):
        finder = NdkBinaryFinder(tmp_path / "empty", "linux-x86_64")
        with pytest.raises(BinaryNotFoundError, match="prebuilt directory"):
            finder.verify_installation(34)
