"""
End-to-end build-and-package pipeline.

Stages run strictly in order and each one gates the next:
    [1/7] Check environment and configuration
    [2/7] Prepare working directory
    [3/7] Fetch NDK and source
    [4/7] Generate toolchain descriptors
    [5/7] Configure and compile
    [6/7] Package
    [7/7] Clean up

No stage retries. Any failure stops the run, keeps the working directory and
logs for inspection, and is reported as a PipelineResult with a stage label
and a distinct exit code.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import List, Optional, Tuple

from .build import (
    BuildOrchestrator,
    Cleanup,
    CompileError,
    CompilerShims,
    ConfigureError,
    DescriptorError,
    MissingArtifactError,
    ShimError,
    ToolchainDescriptorGenerator,
    build_environment,
)
from .bundle import ArtifactIntegrityError, ArtifactPackager, PackagingError
from .config import (
    BuildConfig,
    BuildConfigError,
    VersionRecordError,
    check_release_consistency,
)
from .packages import (
    BinaryNotFoundError,
    BuildMachine,
    EnvironmentProbe,
    FetchError,
    NdkBinaryFinder,
    PlatformDetector,
    PlatformError,
    SourceFetcher,
    WorkdirError,
    WorkdirLockedError,
    WorkingDirectory,
)


class ExitCode(IntEnum):
    """Process exit status for each failure class."""

    SUCCESS = 0
    PRECONDITION = 2
    FETCH = 3
    CONFIGURE = 4
    COMPILE = 5
    MISSING_ARTIFACT = 6
    PACKAGING = 7
    WORKDIR_LOCKED = 8
    INTERRUPTED = 130


@dataclass
class PipelineResult:
    """Outcome of a pipeline run."""

    success: bool
    exit_code: ExitCode
    stage: str
    message: str
    bundles: List[Path] = field(default_factory=list)
    logs: List[Path] = field(default_factory=list)


class PipelineFailure(Exception):
    """Internal: carries a labeled failure out of a stage."""

    def __init__(self, stage: str, exit_code: ExitCode, message: str, log: Optional[Path] = None):
        super().__init__(message)
        self.stage = stage
        self.exit_code = exit_code
        self.log = log


class Pipeline:
    """
    Runs every stage for one release.

    Example usage:
        config = BuildConfig.load()
        result = Pipeline(config).run()
        sys.exit(result.exit_code)
    """

    TOTAL_STAGES = 7

    def __init__(
        self,
        config: BuildConfig,
        ndk_dir: Optional[Path] = None,
        source_dir: Optional[Path] = None,
        probe: Optional[EnvironmentProbe] = None,
        fetcher: Optional[SourceFetcher] = None,
        orchestrator: Optional[BuildOrchestrator] = None,
        packager: Optional[ArtifactPackager] = None,
        build_machine: Optional[BuildMachine] = None,
        verbose: bool = False,
    ):
        """
        Args:
            config: Run configuration
            ndk_dir: Existing extracted NDK (skips the NDK download)
            source_dir: Existing extracted source tree (skips the source download)
            probe, fetcher, orchestrator, packager: Component overrides
            build_machine: Build machine override (default: detected)
            verbose: Print extra detail for each stage
        """
        self.config = config
        self.work_dir = Path(config.work_dir).resolve()
        self.ndk_dir = Path(ndk_dir).resolve() if ndk_dir else None
        self.source_dir = Path(source_dir).resolve() if source_dir else None
        self.probe = probe or EnvironmentProbe()
        self.fetcher = fetcher or SourceFetcher(self.work_dir)
        self.orchestrator = orchestrator or BuildOrchestrator(self.work_dir, jobs=config.jobs)
        self.packager = packager or ArtifactPackager(self.work_dir)
        self.build_machine = build_machine
        self.verbose = verbose
        self._logs: List[Path] = []

    def _stage(self, number: int, title: str) -> None:
        print(f"[{number}/{self.TOTAL_STAGES}] {title}...")
        logging.info(f"Stage {number}/{self.TOTAL_STAGES}: {title}")

    def check_preconditions(self) -> Optional[str]:
        """Validate configuration and host tools before any work starts.

        Returns:
            The compiler launcher to use, or None

        Raises:
            PipelineFailure: On invalid configuration or missing tools
        """
        stage = "precondition"
        release = self.config.release
        try:
            release.validate()
            check_release_consistency(self.config.build_options(), release)
        except (VersionRecordError, BuildConfigError) as e:
            raise PipelineFailure(stage, ExitCode.PRECONDITION, str(e)) from e

        for label, path in (("NDK", self.ndk_dir), ("source", self.source_dir)):
            if path is not None and (path == self.work_dir or self.work_dir in path.parents):
                raise PipelineFailure(
                    stage,
                    ExitCode.PRECONDITION,
                    f"The {label} directory {path} lies inside the working directory, which is recreated",
                )

        result = self.probe.probe()
        if not result.ok:
            raise PipelineFailure(
                stage,
                ExitCode.PRECONDITION,
                f"Missing required tools: {', '.join(result.missing)}",
            )

        if self.build_machine is None:
            try:
                self.build_machine = PlatformDetector.detect_build_machine()
            except PlatformError as e:
                raise PipelineFailure(stage, ExitCode.PRECONDITION, str(e)) from e

        if self.verbose:
            print(f"      Release: {release.name} {release.version} (API {release.min_api})")
            print(f"      Build machine: {self.build_machine.system} {self.build_machine.cpu_family}")

        if self.config.use_ccache and result.has("ccache"):
            return "ccache"
        return None

    def _inputs(self) -> Tuple[Path, Path]:
        ndk_root = self.ndk_dir
        source_root = self.source_dir
        try:
            if ndk_root is None:
                ndk_root = self.fetcher.fetch_one(self.config.ndk)
            if source_root is None:
                source_root = self.fetcher.fetch_one(self.config.source)
        except FetchError as e:
            raise PipelineFailure("fetch", ExitCode.FETCH, str(e)) from e
        return ndk_root, source_root

    def _generate_descriptors(self, ndk_root: Path, launcher: Optional[str]):
        assert self.build_machine is not None
        api_level = self.config.release.min_api

        finder = NdkBinaryFinder(ndk_root, self.build_machine.ndk_host_tag)
        try:
            finder.verify_installation(api_level)
        except BinaryNotFoundError as e:
            raise PipelineFailure("descriptors", ExitCode.PRECONDITION, str(e)) from e

        generator = ToolchainDescriptorGenerator(ndk_root, self.build_machine)
        try:
            descriptors = generator.generate(api_level, self.work_dir, launcher=launcher)
        except DescriptorError as e:
            raise PipelineFailure("descriptors", ExitCode.PRECONDITION, str(e)) from e

        if f"android{api_level}-" not in descriptors.cross.c_compiler.name:
            raise PipelineFailure(
                "descriptors",
                ExitCode.PRECONDITION,
                f"Cross compiler {descriptors.cross.c_compiler.name} does not target API {api_level}",
            )
        return descriptors, finder.bin_dir

    def _build(self, source_root: Path, descriptors, ndk_bin: Path) -> Path:
        shims = CompilerShims(self.work_dir)
        try:
            shim_dir = shims.create(ndk_bin)
        except ShimError as e:
            raise PipelineFailure("configure", ExitCode.CONFIGURE, str(e)) from e

        env = build_environment(shim_dir, ndk_bin)
        self._logs = [self.orchestrator.configure_log, self.orchestrator.compile_log]

        try:
            result = self.orchestrator.build(source_root, descriptors, self.config.build_options(), env)
        except ConfigureError as e:
            raise PipelineFailure("configure", ExitCode.CONFIGURE, str(e), e.log_path) from e
        except CompileError as e:
            raise PipelineFailure("compile", ExitCode.COMPILE, str(e), e.log_path) from e
        except MissingArtifactError as e:
            raise PipelineFailure("artifact", ExitCode.MISSING_ARTIFACT, str(e), e.log_path) from e

        if self.verbose:
            print(f"      Built {result.artifact.name} in {result.build_time:.1f}s")
        return result.artifact

    def _package(self, artifact: Path) -> List[Path]:
        try:
            packaged = self.packager.package(artifact, self.config.release)
        except VersionRecordError as e:
            raise PipelineFailure("package", ExitCode.PRECONDITION, str(e)) from e
        except ArtifactIntegrityError as e:
            raise PipelineFailure("package", ExitCode.MISSING_ARTIFACT, str(e)) from e
        except PackagingError as e:
            raise PipelineFailure(f"package ({e.bundle})", ExitCode.PACKAGING, str(e)) from e

        bundles = [packaged.overlay_bundle, packaged.emulator_bundle]
        absent = [b for b in bundles if not b.is_file()]
        if absent:
            raise PipelineFailure(
                "package",
                ExitCode.PACKAGING,
                f"Bundle missing after packaging: {', '.join(str(b) for b in absent)}",
            )
        return bundles

    def _cleanup(self) -> None:
        failed = Cleanup(self.work_dir).run()
        if failed:
            logging.warning(f"Cleanup left {len(failed)} path(s) behind")

    def _failed(self, failure: PipelineFailure) -> PipelineResult:
        logging.error(f"Pipeline failed at {failure.stage}: {failure}")
        logs = [log for log in self._logs if log.exists()]
        return PipelineResult(
            success=False,
            exit_code=failure.exit_code,
            stage=failure.stage,
            message=str(failure),
            logs=logs,
        )

    def run(self) -> PipelineResult:
        """Run every stage.

        Returns:
            PipelineResult; exit_code is SUCCESS only if both bundles exist

        Raises:
            KeyboardInterrupt: Propagated after the lock is released
        """
        workdir = WorkingDirectory(self.work_dir)
        try:
            self._stage(1, "Checking environment and configuration")
            launcher = self.check_preconditions()

            self._stage(2, "Preparing working directory")
            try:
                workdir.acquire()
                workdir.recreate()
            except WorkdirLockedError as e:
                raise PipelineFailure("workdir", ExitCode.WORKDIR_LOCKED, str(e)) from e
            except (WorkdirError, OSError) as e:
                raise PipelineFailure("workdir", ExitCode.PRECONDITION, str(e)) from e

            self._stage(3, "Fetching NDK and source")
            ndk_root, source_root = self._inputs()

            self._stage(4, "Generating toolchain descriptors")
            descriptors, ndk_bin = self._generate_descriptors(ndk_root, launcher)

            self._stage(5, "Configuring and compiling")
            artifact = self._build(source_root, descriptors, ndk_bin)

            self._stage(6, "Packaging")
            bundles = self._package(artifact)

            self._stage(7, "Cleaning up")
            self._cleanup()

        except PipelineFailure as failure:
            return self._failed(failure)
        finally:
            workdir.release()

        return PipelineResult(
            success=True,
            exit_code=ExitCode.SUCCESS,
            stage="done",
            message="Build finished",
            bundles=bundles,
            logs=self._logs,
        )

    def package_only(self, artifact: Path) -> PipelineResult:
        """Package an already built library without configuring or compiling.

        The working directory is locked but not recreated.
        """
        workdir = WorkingDirectory(self.work_dir)
        try:
            try:
                self.config.release.validate()
            except VersionRecordError as e:
                raise PipelineFailure("precondition", ExitCode.PRECONDITION, str(e)) from e

            try:
                workdir.acquire()
                self.work_dir.mkdir(parents=True, exist_ok=True)
            except WorkdirLockedError as e:
                raise PipelineFailure("workdir", ExitCode.WORKDIR_LOCKED, str(e)) from e
            except (WorkdirError, OSError) as e:
                raise PipelineFailure("workdir", ExitCode.PRECONDITION, str(e)) from e

            bundles = self._package(Path(artifact))
            self._cleanup()
        except PipelineFailure as failure:
            return self._failed(failure)
        finally:
            workdir.release()

        return PipelineResult(
            success=True,
            exit_code=ExitCode.SUCCESS,
            stage="done",
            message="Packaging finished",
            bundles=bundles,
        )
