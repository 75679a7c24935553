"""External inputs for turnipkit.

This module handles everything the build consumes from outside: host tool
presence, the build machine identity, the Android NDK layout, archive
downloads and the working directory.
"""

from .downloader import ChecksumError, DownloadError, ExtractionError, PackageDownloader
from .environment_probe import EnvironmentProbe, ProbeResult
from .fetcher import FetchError, SourceFetcher
from .platform_utils import BuildMachine, PlatformDetector, PlatformError
from .toolchain_binaries import BinaryNotFoundError, NdkBinaryFinder, target_compiler_name
from .workdir import WorkdirError, WorkdirLockedError, WorkingDirectory

__all__ = [
    "PackageDownloader",
    "DownloadError",
    "ChecksumError",
    "ExtractionError",
    "EnvironmentProbe",
    "ProbeResult",
    "SourceFetcher",
    "FetchError",
    "BuildMachine",
    "PlatformDetector",
    "PlatformError",
    "NdkBinaryFinder",
    "BinaryNotFoundError",
    "target_compiler_name",
    "WorkingDirectory",
    "WorkdirError",
    "WorkdirLockedError",
]
