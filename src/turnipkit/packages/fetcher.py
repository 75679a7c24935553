"""
NDK and upstream source fetching.

Downloads the Android NDK bundle and the Mesa source archive into the
working directory and extracts both next to each other.
"""

import logging
from pathlib import Path
from typing import Optional

from ..config import SourceSpec
from .downloader import ChecksumError, DownloadError, ExtractionError, PackageDownloader


class FetchError(Exception):
    """Raised when an archive cannot be downloaded or extracted."""

    pass


class SourceFetcher:
    """Fetches the toolchain bundle and the driver source into a work directory."""

    def __init__(
        self,
        work_dir: Path,
        downloader: Optional[PackageDownloader] = None,
        show_progress: bool = True,
    ):
        self.work_dir = Path(work_dir)
        self.downloader = downloader or PackageDownloader()
        self.show_progress = show_progress

    def fetch_one(self, spec: SourceSpec) -> Path:
        """Download and extract one archive.

        Args:
            spec: Archive URL, optional sha256 and the top-level directory it
                extracts to

        Returns:
            Path to the extracted top-level directory

        Raises:
            FetchError: If download or extraction fails, or the expected
                directory is not present afterwards
        """
        logging.info(f"Fetching {spec.url}")
        try:
            self.downloader.download_and_extract(
                spec.url,
                cache_dir=self.work_dir,
                extract_dir=self.work_dir,
                checksum=spec.sha256 or None,
                show_progress=self.show_progress,
            )
        except (DownloadError, ChecksumError, ExtractionError) as e:
            raise FetchError(str(e)) from e

        root = self.work_dir / spec.name
        if not root.is_dir():
            raise FetchError(f"Archive {spec.url} did not contain {spec.name}/")
        return root

