"""Unit tests for the end-to-end pipeline with external tools mocked out."""

import dataclasses
import json
import zipfile
from unittest.mock import Mock

import pytest

from turnipkit.build import BuildOrchestrator, BuildResult, CompileError, ConfigureError, MissingArtifactError
from turnipkit.config import BuildConfig
from turnipkit.packages import EnvironmentProbe, FetchError, ProbeResult, SourceFetcher, WorkingDirectory
from turnipkit.pipeline import ExitCode, Pipeline


@pytest.fixture
def work_dir(tmp_path):
    return tmp_path / "turnip_workdir"


@pytest.fixture
def source_dir(tmp_path):
    path = tmp_path / "mesa-src"
    path.mkdir()
    return path


@pytest.fixture
def probe():
    probe = Mock(spec=EnvironmentProbe)
    probe.probe.return_value = ProbeResult(found={"meson": "/usr/bin/meson", "ninja": "/usr/bin/ninja"})
    return probe


@pytest.fixture
def orchestrator(work_dir, fake_artifact):
    orchestrator = Mock(spec=BuildOrchestrator)
    orchestrator.configure_log = work_dir / "meson_log"
    orchestrator.compile_log = work_dir / "ninja_log"
    orchestrator.build.return_value = BuildResult(
        artifact=fake_artifact,
        build_dir=fake_artifact.parent,
        configure_log=orchestrator.configure_log,
        compile_log=orchestrator.compile_log,
        build_time=1.0,
    )
    return orchestrator


def make_pipeline(release, work_dir, fake_ndk, source_dir, probe, orchestrator, build_machine, **kwargs):
    config = BuildConfig(release=release, work_dir=work_dir)
    kwargs.setdefault("ndk_dir", fake_ndk)
    kwargs.setdefault("source_dir", source_dir)
    return Pipeline(
        config,
        probe=probe,
        orchestrator=orchestrator,
        build_machine=build_machine,
        **kwargs,
    )


@pytest.fixture
def pipeline(release, work_dir, fake_ndk, source_dir, probe, orchestrator, build_machine):
    return make_pipeline(release, work_dir, fake_ndk, source_dir, probe, orchestrator, build_machine)


class TestPipelineSuccess:
    def test_produces_both_bundles(self, pipeline, work_dir):
        result = pipeline.run()

        assert result.success
        assert result.exit_code == ExitCode.SUCCESS
        assert [b.name for b in result.bundles] == [
            "Turnip-1.2.3-MAGISK-KSU.zip",
            "Turnip-1.2.3-EMULATOR.zip",
        ]
        for bundle in result.bundles:
            assert zipfile.is_zipfile(bundle)

    def test_transient_paths_removed(self, pipeline, work_dir):
        pipeline.run()
        assert not (work_dir / "fake-cc").exists()
        assert not (work_dir / "staging").exists()
        assert (work_dir / "android-aarch64.txt").exists()
        assert (work_dir / "native.txt").exists()

    def test_lock_released(self, pipeline, work_dir):
        pipeline.run()
        assert not WorkingDirectory(work_dir).lock_file.exists()

    def test_build_receives_api_consistent_options(self, pipeline, orchestrator, work_dir, source_dir):
        pipeline.run()

        args = orchestrator.build.call_args.args
        assert args[0] == source_dir
        descriptors, options, env = args[1], args[2], args[3]
        assert options.platform_sdk_version == 34
        assert descriptors.api_level == 34
        assert "android34-" in descriptors.cross.c_compiler.name
        assert env["PATH"].startswith(str(work_dir / "fake-cc"))

    def test_bundles_carry_descriptor_api_level(self, pipeline, orchestrator):
        result = pipeline.run()
        descriptors = orchestrator.build.call_args.args[1]
        overlay, emulator = result.bundles

        with zipfile.ZipFile(emulator) as zf:
            manifest = json.loads(zf.read("meta.json"))
        with zipfile.ZipFile(overlay) as zf:
            customize = zf.read("customize.sh").decode()

        assert manifest["minApi"] == descriptors.api_level
        assert f"-lt {descriptors.api_level} ]" in customize
        assert f"android{manifest['minApi']}-clang" in descriptors.cross.c_compiler.name

    def test_previous_workdir_contents_removed(self, pipeline, work_dir):
        work_dir.mkdir()
        (work_dir / "old-build.txt").write_text("stale")
        pipeline.run()
        assert not (work_dir / "old-build.txt").exists()

    def test_ccache_used_when_found(self, pipeline, probe, orchestrator):
        probe.probe.return_value = ProbeResult(found={"meson": "m", "ccache": "/usr/bin/ccache"})
        pipeline.run()
        descriptors = orchestrator.build.call_args.args[1]
        assert descriptors.cross.launcher == "ccache"


class TestPipelineFailures:
    def test_compile_failure_produces_no_bundles(self, pipeline, orchestrator, work_dir):
        orchestrator.build.side_effect = CompileError("ninja exited with status 1", work_dir / "ninja_log")

        result = pipeline.run()

        assert not result.success
        assert result.exit_code == ExitCode.COMPILE
        assert result.stage == "compile"
        assert result.bundles == []
        assert list(work_dir.glob("*.zip")) == []

    def test_configure_failure(self, pipeline, orchestrator, work_dir):
        orchestrator.build.side_effect = ConfigureError("meson setup exited with status 1")
        result = pipeline.run()
        assert result.exit_code == ExitCode.CONFIGURE
        assert result.stage == "configure"

    def test_missing_artifact(self, pipeline, orchestrator, work_dir):
        orchestrator.build.side_effect = MissingArtifactError("Build reported success but it was not found")

        result = pipeline.run()

        assert result.exit_code == ExitCode.MISSING_ARTIFACT
        assert result.stage == "artifact"
        assert list(work_dir.glob("*.zip")) == []

    def test_failure_keeps_workdir_and_logs(self, pipeline, orchestrator, work_dir):
        def fail(*args, **kwargs):
            (work_dir / "ninja_log").write_text("error: something broke")
            raise CompileError("ninja exited with status 1", work_dir / "ninja_log")

        orchestrator.build.side_effect = fail
        result = pipeline.run()

        assert result.logs == [work_dir / "ninja_log"]
        assert (work_dir / "ninja_log").read_text() == "error: something broke"
        assert (work_dir / "fake-cc").exists()

    def test_concurrent_run_fails_fast(self, pipeline, work_dir, orchestrator):
        work_dir.mkdir()
        marker = work_dir / "first-run.txt"
        marker.write_text("busy")

        with WorkingDirectory(work_dir):
            result = pipeline.run()

        assert result.exit_code == ExitCode.WORKDIR_LOCKED
        assert result.stage == "workdir"
        assert marker.exists()
        orchestrator.build.assert_not_called()

    def test_missing_tools(self, pipeline, probe, orchestrator, work_dir):
        probe.probe.return_value = ProbeResult(missing=["meson", "glslangValidator"])

        result = pipeline.run()

        assert result.exit_code == ExitCode.PRECONDITION
        assert "meson, glslangValidator" in result.message
        assert not work_dir.exists()
        orchestrator.build.assert_not_called()

    def test_invalid_release(self, pipeline, probe, release):
        pipeline.config.release = dataclasses.replace(release, version="")
        result = pipeline.run()
        assert result.exit_code == ExitCode.PRECONDITION
        probe.probe.assert_not_called()

    def test_ndk_lacks_target_api(self, release, work_dir, fake_ndk, source_dir, probe, orchestrator, build_machine):
        pipeline = make_pipeline(
            dataclasses.replace(release, min_api=35),
            work_dir, fake_ndk, source_dir, probe, orchestrator, build_machine,
        )
        result = pipeline.run()
        assert result.exit_code == ExitCode.PRECONDITION
        assert result.stage == "descriptors"
        assert "API 35" in result.message
        orchestrator.build.assert_not_called()

    def test_input_inside_workdir_rejected(
        self, release, work_dir, fake_ndk, probe, orchestrator, build_machine
    ):
        pipeline = make_pipeline(
            release, work_dir, fake_ndk, work_dir / "mesa", probe, orchestrator, build_machine
        )
        result = pipeline.run()
        assert result.exit_code == ExitCode.PRECONDITION
        assert "inside the working directory" in result.message

    def test_fetch_failure(self, release, work_dir, probe, orchestrator, build_machine):
        fetcher = Mock(spec=SourceFetcher)
        fetcher.fetch_one.side_effect = FetchError("Failed to download ndk: 404")
        pipeline = Pipeline(
            BuildConfig(release=release, work_dir=work_dir),
            probe=probe,
            fetcher=fetcher,
            orchestrator=orchestrator,
            build_machine=build_machine,
        )

        result = pipeline.run()

        assert result.exit_code == ExitCode.FETCH
        assert result.stage == "fetch"

    def test_interrupt_releases_lock(self, pipeline, orchestrator, work_dir):
        orchestrator.build.side_effect = KeyboardInterrupt
        with pytest.raises(KeyboardInterrupt):
            pipeline.run()
        assert not WorkingDirectory(work_dir).lock_file.exists()


class TestPackageOnly:
    def test_packages_existing_library(self, pipeline, fake_artifact, work_dir, orchestrator):
        result = pipeline.package_only(fake_artifact)

        assert result.exit_code == ExitCode.SUCCESS
        assert all(b.parent == work_dir.resolve() or b.parent == work_dir for b in result.bundles)
        orchestrator.build.assert_not_called()

    def test_missing_library(self, pipeline, tmp_path):
        result = pipeline.package_only(tmp_path / "missing.so")
        assert result.exit_code == ExitCode.MISSING_ARTIFACT

    def test_keeps_existing_workdir_contents(self, pipeline, fake_artifact, work_dir):
        work_dir.mkdir()
        (work_dir / "meson_log").write_text("kept")
        pipeline.package_only(fake_artifact)
        assert (work_dir / "meson_log").read_text() == "kept"
