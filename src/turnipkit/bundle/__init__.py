"""Distribution packaging for turnipkit."""

from .archive_creator import ArchiveCreator, ArchiveError
from .packager import (
    ArtifactIntegrityError,
    ArtifactPackager,
    PackagingError,
    PackagingResult,
)

__all__ = [
    "ArchiveCreator",
    "ArchiveError",
    "ArtifactIntegrityError",
    "ArtifactPackager",
    "PackagingError",
    "PackagingResult",
]
