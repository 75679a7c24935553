"""Unit tests for Meson machine file generation."""

from pathlib import Path

import pytest

from turnipkit.build import DescriptorError, ToolchainDescriptorGenerator
from turnipkit.build.descriptor_generator import (
    CROSS_FILE_NAME,
    CXX_ARGS,
    NATIVE_FILE_NAME,
    meson_literal,
)


class TestMesonLiteral:
    def test_string(self):
        assert meson_literal("clang") == "'clang'"

    def test_quotes_escaped(self):
        assert meson_literal("it's") == "'it\\'s'"

    def test_list(self):
        assert meson_literal(["ccache", "clang"]) == "['ccache', 'clang']"


class TestToolchainDescriptorGenerator:
    @pytest.fixture
    def generator(self, fake_ndk, build_machine):
        return ToolchainDescriptorGenerator(fake_ndk, build_machine)

    @pytest.mark.parametrize("api", [29, 34, 35])
    def test_compilers_carry_api_level(self, generator, api):
        cross = generator.cross_descriptor(api)
        assert f"android{api}-" in cross.c_compiler.name
        assert f"android{api}-" in cross.cpp_compiler.name
        assert cross.cpp_compiler.name.endswith("clang++")

    def test_roles(self, generator):
        roles = generator.cross_descriptor(34).roles()
        assert set(roles) == {
            "archiver",
            "c-compiler",
            "c++-compiler",
            "linker",
            "stripper",
            "pkg-config-wrapper",
        }
        assert roles["archiver"].endswith("llvm-ar")
        assert roles["stripper"].endswith("llvm-strip")
        assert roles["linker"].endswith("ld.lld")

    def test_pkg_config_uses_ndk_directory(self, generator, fake_ndk):
        cross = generator.cross_descriptor(34)
        assert cross.pkg_config[0] == "env"
        assert cross.pkg_config[1] == f"PKG_CONFIG_LIBDIR={fake_ndk / 'pkg-config'}"
        assert cross.pkg_config[2] == "/usr/bin/pkg-config"

    def test_generate_writes_both_files(self, generator, tmp_path):
        dest = tmp_path / "work"
        descriptors = generator.generate(34, dest)

        assert descriptors.cross_file == dest / CROSS_FILE_NAME
        assert descriptors.native_file == dest / NATIVE_FILE_NAME
        assert descriptors.api_level == 34

        cross_text = descriptors.cross_file.read_text()
        assert "[binaries]" in cross_text
        assert "[host_machine]" in cross_text
        assert "system = 'android'" in cross_text
        assert "cpu_family = 'aarch64'" in cross_text
        assert "cpu = 'armv8'" in cross_text
        assert "endian = 'little'" in cross_text
        assert "aarch64-linux-android34-clang'" in cross_text
        for flag in CXX_ARGS:
            assert f"'{flag}'" in cross_text

        native_text = descriptors.native_file.read_text()
        assert "[build_machine]" in native_text
        assert "c = ['clang']" in native_text
        assert "cpp = ['clang++']" in native_text
        assert "cpu_family = 'x86_64'" in native_text

    def test_generate_is_deterministic(self, generator, tmp_path):
        first = generator.generate(34, tmp_path / "a")
        second = generator.generate(34, tmp_path / "b")
        assert first.cross_file.read_text() == second.cross_file.read_text()
        assert first.native_file.read_text() == second.native_file.read_text()

    def test_launcher_prefixes_compilers(self, generator, tmp_path):
        descriptors = generator.generate(34, tmp_path, launcher="ccache")
        cross_text = descriptors.cross_file.read_text()
        native_text = descriptors.native_file.read_text()
        assert "c = ['ccache', " in cross_text
        assert "cpp = ['ccache', " in cross_text
        assert "c = ['ccache', 'clang']" in native_text

    def test_generate_write_failure(self, generator, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        with pytest.raises(DescriptorError):
            generator.generate(34, blocker)

    def test_binaries_are_absolute(self, generator):
        cross = generator.cross_descriptor(34)
        for path in (cross.archiver, cross.c_compiler, cross.cpp_compiler, cross.linker, cross.stripper):
            assert Path(path).is_absolute()
