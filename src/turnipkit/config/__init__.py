"""Configuration and release metadata for turnipkit."""

from .build_config import (
    BuildConfig,
    BuildConfigError,
    SourceSpec,
    check_release_consistency,
)
from .build_options import BuildOptions
from .version_record import VersionRecord, VersionRecordError

__all__ = [
    "BuildConfig",
    "BuildConfigError",
    "BuildOptions",
    "SourceSpec",
    "VersionRecord",
    "VersionRecordError",
    "check_release_consistency",
]
