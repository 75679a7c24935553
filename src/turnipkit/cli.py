"""
Command-line interface for turnipkit.

This module provides the `turnip` CLI tool for building and packaging the
Mesa Turnip Vulkan driver.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import __version__
from .cli_utils import ErrorFormatter, PathValidator, format_missing
from .config import BuildConfig, BuildConfigError, VersionRecordError
from .packages import EnvironmentProbe, PlatformDetector, PlatformError
from .pipeline import ExitCode, Pipeline

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "turnip.log"


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    config: Optional[Path] = None
    work_dir: Optional[Path] = None
    ndk_dir: Optional[Path] = None
    source_dir: Optional[Path] = None
    jobs: Optional[int] = None
    no_ccache: bool = False
    verbose: bool = False


@dataclass
class CheckArgs:
    """Arguments for the check command."""

    config: Optional[Path] = None
    verbose: bool = False


@dataclass
class PackageArgs:
    """Arguments for the package command."""

    artifact: Path
    config: Optional[Path] = None
    work_dir: Optional[Path] = None
    verbose: bool = False


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """Configure console and rotating file logging.

    Args:
        log_dir: Directory receiving turnip.log (kept outside the working
            directory so recreating it does not delete the log)
        verbose: Show debug output on the console
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)


def load_config(config_path: Optional[Path], work_dir: Optional[Path] = None) -> BuildConfig:
    """Load configuration or exit with the precondition status."""
    try:
        config = BuildConfig.load(config_path)
    except BuildConfigError as e:
        ErrorFormatter.print_error("Invalid configuration", str(e))
        sys.exit(ExitCode.PRECONDITION)
    if work_dir is not None:
        config.work_dir = work_dir.resolve()
    return config


def build_command(args: BuildArgs) -> None:
    """Build the driver and produce both bundles.

    Examples:
        turnip build                              # Download everything and build
        turnip build --ndk-dir ~/android-ndk-r29  # Reuse an extracted NDK
        turnip build -c turnip.ini -j 8           # Custom release, 8 jobs
    """
    print(f"Turnip Driver Builder v{__version__}")
    print()

    config = load_config(args.config, args.work_dir)
    if args.jobs:
        config.jobs = args.jobs
    if args.no_ccache:
        config.use_ccache = False

    setup_logging(config.work_dir.parent, args.verbose)

    try:
        pipeline = Pipeline(
            config,
            ndk_dir=args.ndk_dir,
            source_dir=args.source_dir,
            verbose=args.verbose,
        )
        result = pipeline.run()
        ErrorFormatter.print_result(result)
        sys.exit(result.exit_code)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt(config.work_dir)
    except Exception as e:
        logging.exception("Unexpected error during build")
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def check_command(args: CheckArgs) -> None:
    """Check host tools and configuration without building.

    Examples:
        turnip check
        turnip check -c turnip.ini
    """
    config = load_config(args.config)
    exit_code = ExitCode.SUCCESS

    try:
        config.release.validate()
        print(f"Release: {config.release.name} {config.release.version} (API {config.release.min_api})")
    except VersionRecordError as e:
        ErrorFormatter.print_error("Invalid release metadata", str(e))
        exit_code = ExitCode.PRECONDITION

    try:
        machine = PlatformDetector.detect_build_machine()
        print(f"Build machine: {machine.system} {machine.cpu_family} (NDK host {machine.ndk_host_tag})")
    except PlatformError as e:
        ErrorFormatter.print_error("Unsupported build machine", str(e))
        exit_code = ExitCode.PRECONDITION

    result = EnvironmentProbe().probe()
    for tool, path in sorted(result.found.items()):
        print(f"  - {tool} found ({path})")
    if result.optional_missing:
        print(format_missing(result.optional_missing) + " (optional)")
    if not result.ok:
        ErrorFormatter.print_error("Missing dependencies", format_missing(result.missing))
        exit_code = ExitCode.PRECONDITION

    if exit_code == ExitCode.SUCCESS:
        ErrorFormatter.print_success("Environment ready")
    sys.exit(exit_code)


def package_command(args: PackageArgs) -> None:
    """Package an already built libvulkan_freedreno.so.

    Examples:
        turnip package build-android-aarch64/src/freedreno/vulkan/libvulkan_freedreno.so
    """
    config = load_config(args.config, args.work_dir)
    setup_logging(config.work_dir.parent, args.verbose)

    try:
        result = Pipeline(config, verbose=args.verbose).package_only(args.artifact.resolve())
        ErrorFormatter.print_result(result)
        sys.exit(result.exit_code)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt(config.work_dir)
    except Exception as e:
        logging.exception("Unexpected error during packaging")
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def main() -> None:
    """turnip - build the Mesa Turnip Vulkan driver for Android."""
    parser = argparse.ArgumentParser(
        prog="turnip",
        description="Build the Mesa Turnip Vulkan driver for Android and package it",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"turnip {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser("build", help="Build and package the driver")
    build_parser.add_argument("-c", "--config", type=Path, default=None, help="Path to turnip.ini")
    build_parser.add_argument(
        "-w", "--workdir", type=Path, default=None,
        help="Working directory (default: ./turnip_workdir or $TURNIP_WORKDIR)",
    )
    build_parser.add_argument("--ndk-dir", type=Path, default=None, help="Use an extracted NDK instead of downloading")
    build_parser.add_argument(
        "--source-dir", type=Path, default=None,
        help="Use an extracted Mesa source tree instead of downloading",
    )
    build_parser.add_argument("-j", "--jobs", type=int, default=None, help="Parallel compile jobs")
    build_parser.add_argument("--no-ccache", action="store_true", help="Do not use ccache even if installed")
    build_parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")

    # Check command
    check_parser = subparsers.add_parser("check", help="Check dependencies and configuration")
    check_parser.add_argument("-c", "--config", type=Path, default=None, help="Path to turnip.ini")
    check_parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")

    # Package command
    package_parser = subparsers.add_parser("package", help="Package an existing driver library")
    package_parser.add_argument("artifact", type=Path, help="Path to libvulkan_freedreno.so")
    package_parser.add_argument("-c", "--config", type=Path, default=None, help="Path to turnip.ini")
    package_parser.add_argument("-w", "--workdir", type=Path, default=None, help="Working directory")
    package_parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")

    parsed_args = parser.parse_args()

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "build":
        for label, path in (("NDK directory", parsed_args.ndk_dir), ("Source directory", parsed_args.source_dir)):
            if path is not None:
                PathValidator.validate_dir(path, label)
        build_command(BuildArgs(
            config=parsed_args.config,
            work_dir=parsed_args.workdir,
            ndk_dir=parsed_args.ndk_dir,
            source_dir=parsed_args.source_dir,
            jobs=parsed_args.jobs,
            no_ccache=parsed_args.no_ccache,
            verbose=parsed_args.verbose,
        ))
    elif parsed_args.command == "check":
        check_command(CheckArgs(config=parsed_args.config, verbose=parsed_args.verbose))
    elif parsed_args.command == "package":
        PathValidator.validate_file(parsed_args.artifact, "Artifact")
        package_command(PackageArgs(
            artifact=parsed_args.artifact,
            config=parsed_args.config,
            work_dir=parsed_args.workdir,
            verbose=parsed_args.verbose,
        ))


if __name__ == "__main__":
    main()
