"""
External build orchestration for the Turnip driver.

This module drives Meson and Ninja through the generated machine files:
1. Configure the project (meson setup) with the cross/native files and options
2. Compile the configured project (ninja)
3. Verify the expected shared library exists and is non-empty

Build-system output is written to log files in the working directory; only
status lines are printed.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ..config import BuildOptions
from .descriptor_generator import DescriptorSet

BUILD_DIR_NAME = "build-android-aarch64"
ARTIFACT_RELPATH = Path("src") / "freedreno" / "vulkan" / "libvulkan_freedreno.so"
CONFIGURE_LOG_NAME = "meson_log"
COMPILE_LOG_NAME = "ninja_log"


class BuildOrchestratorError(Exception):
    """Base class for build failures."""

    def __init__(self, message: str, log_path: Optional[Path] = None):
        super().__init__(message)
        self.log_path = log_path


class ConfigureError(BuildOrchestratorError):
    """Raised when the configure step fails."""

    pass


class CompileError(BuildOrchestratorError):
    """Raised when the compile step fails."""

    pass


class MissingArtifactError(BuildOrchestratorError):
    """Raised when compilation succeeded but the expected library is absent."""

    pass


@dataclass
class BuildResult:
    """Result of a successful configure + compile."""

    artifact: Path
    build_dir: Path
    configure_log: Path
    compile_log: Path
    build_time: float


class BuildOrchestrator:
    """
    Runs the configure and compile steps and validates the output.

    Example usage:
        orchestrator = BuildOrchestrator(work_dir)
        result = orchestrator.build(source_dir, descriptors, options, env)
        print(f"Driver: {result.artifact}")
    """

    def __init__(
        self,
        work_dir: Path,
        meson: str = "meson",
        ninja: str = "ninja",
        jobs: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize build orchestrator.

        Args:
            work_dir: Working directory receiving the log files
            meson: Meson executable
            ninja: Ninja executable
            jobs: Parallel job count for ninja (None lets ninja decide)
            timeout: Optional per-step timeout in seconds; None waits forever
        """
        self.work_dir = Path(work_dir)
        self.meson = meson
        self.ninja = ninja
        self.jobs = jobs
        self.timeout = timeout

    @property
    def configure_log(self) -> Path:
        return self.work_dir / CONFIGURE_LOG_NAME

    @property
    def compile_log(self) -> Path:
        return self.work_dir / COMPILE_LOG_NAME

    def configure_command(
        self, descriptors: DescriptorSet, options: BuildOptions
    ) -> List[str]:
        cmd = [
            self.meson,
            "setup",
            BUILD_DIR_NAME,
            "--cross-file",
            str(descriptors.cross_file),
            "--native-file",
            str(descriptors.native_file),
        ]
        cmd.extend(options.to_meson_args())
        return cmd

    def compile_command(self) -> List[str]:
        cmd = [self.ninja, "-C", BUILD_DIR_NAME]
        if self.jobs:
            cmd.extend(["-j", str(self.jobs)])
        return cmd

    def _run_logged(
        self,
        cmd: List[str],
        cwd: Path,
        log_path: Path,
        env: Optional[Dict[str, str]],
    ) -> int:
        """Run cmd with stdout and stderr redirected into log_path."""
        logging.info(f"Running: {' '.join(cmd)} (cwd={cwd}, log={log_path})")
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "w", encoding="utf-8") as log_file:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=env,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                timeout=self.timeout,
            )
        return result.returncode

    def configure(
        self,
        source_dir: Path,
        descriptors: DescriptorSet,
        options: BuildOptions,
        env: Optional[Dict[str, str]] = None,
    ) -> Path:
        """Run meson setup.

        Returns:
            Path to the configured build directory

        Raises:
            ConfigureError: If meson cannot be started or exits non-zero
        """
        print("Generating build files...")
        cmd = self.configure_command(descriptors, options)
        try:
            returncode = self._run_logged(cmd, source_dir, self.configure_log, env)
        except (OSError, subprocess.SubprocessError) as e:
            raise ConfigureError(f"Failed to run {self.meson}: {e}", self.configure_log) from e

        if returncode != 0:
            raise ConfigureError(
                f"meson setup exited with status {returncode}; see {self.configure_log}",
                self.configure_log,
            )
        return Path(source_dir) / BUILD_DIR_NAME

    def compile(self, source_dir: Path, env: Optional[Dict[str, str]] = None) -> None:
        """Run ninja on the configured build directory.

        Raises:
            CompileError: If ninja cannot be started or exits non-zero
        """
        print("Compiling build files...")
        cmd = self.compile_command()
        try:
            returncode = self._run_logged(cmd, source_dir, self.compile_log, env)
        except (OSError, subprocess.SubprocessError) as e:
            raise CompileError(f"Failed to run {self.ninja}: {e}", self.compile_log) from e

        if returncode != 0:
            raise CompileError(
                f"ninja exited with status {returncode}; see {self.compile_log}",
                self.compile_log,
            )

    def validate_artifact(self, build_dir: Path) -> Path:
        """Check the compiled library independently of ninja's exit status.

        Raises:
            MissingArtifactError: If the library is absent or empty
        """
        artifact = Path(build_dir) / ARTIFACT_RELPATH
        if not artifact.is_file():
            raise MissingArtifactError(
                f"Build reported success but {artifact.name} was not found at {artifact}",
                self.compile_log,
            )
        if artifact.stat().st_size == 0:
            raise MissingArtifactError(
                f"Build reported success but {artifact} is empty", self.compile_log
            )
        return artifact

    def build(
        self,
        source_dir: Path,
        descriptors: DescriptorSet,
        options: BuildOptions,
        env: Optional[Dict[str, str]] = None,
    ) -> BuildResult:
        """Configure, compile and validate.

        Raises:
            ConfigureError, CompileError, MissingArtifactError
        """
        start_time = time.time()
        build_dir = self.configure(source_dir, descriptors, options, env)
        self.compile(source_dir, env)
        artifact = self.validate_artifact(build_dir)
        build_time = time.time() - start_time
        logging.info(f"Built {artifact} in {build_time:.1f}s")
        return BuildResult(
            artifact=artifact,
            build_dir=build_dir,
            configure_log=self.configure_log,
            compile_log=self.compile_log,
            build_time=build_time,
        )
