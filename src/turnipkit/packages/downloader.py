"""Archive downloads for the NDK and the Mesa source.

Archives are streamed to `<name>.tmp` and renamed once complete, so a file
under the final name is always a whole download. Extraction keeps unix
permission bits and symlinks, which the NDK's prebuilt tree relies on.
"""

import hashlib
import logging
import os
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests
from tqdm import tqdm

TAR_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz")


class DownloadError(Exception):
    """Raised when an archive cannot be fetched over HTTP."""

    pass


class ChecksumError(Exception):
    """Raised when a downloaded archive does not match its sha256."""

    pass


class ExtractionError(Exception):
    """Raised when an archive cannot be unpacked."""

    pass


def archive_name(url: str) -> str:
    """Last path component of url, e.g. 'mesa-mesa-25.1.5.zip'."""
    return Path(urlparse(url).path).name


class PackageDownloader:
    """Streams archives to disk and unpacks them."""

    def __init__(self, chunk_size: int = 1024 * 64, timeout: int = 30):
        """
        Args:
            chunk_size: Bytes read per iteration while streaming
            timeout: Connect/read timeout in seconds
        """
        self.chunk_size = chunk_size
        self.timeout = timeout

    def _stream(self, response, partial: Path, show_progress: bool) -> str:
        """Write the response body to partial and return its sha256."""
        digest = hashlib.sha256()
        expected = int(response.headers.get("content-length", 0)) or None

        with tqdm(
            total=expected,
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            desc=partial.name.removesuffix(".tmp"),
            disable=not show_progress,
        ) as bar, open(partial, "wb") as out:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if not chunk:
                    continue
                out.write(chunk)
                digest.update(chunk)
                bar.update(len(chunk))

        return digest.hexdigest()

    def download(
        self,
        url: str,
        dest_path: Path,
        checksum: Optional[str] = None,
        show_progress: bool = True,
    ) -> Path:
        """Fetch url into dest_path.

        Raises:
            DownloadError: On any HTTP or connection failure
            ChecksumError: If checksum is given and does not match
        """
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        partial = dest_path.with_name(dest_path.name + ".tmp")

        logging.info(f"Downloading {url} -> {dest_path}")
        try:
            response = requests.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()
            actual = self._stream(response, partial, show_progress)

            if checksum and actual.lower() != checksum.lower():
                raise ChecksumError(
                    f"Checksum mismatch for {archive_name(url)}: expected {checksum}, got {actual}"
                )
            partial.replace(dest_path)
        except requests.RequestException as e:
            partial.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download {url}: {e}") from e
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        return dest_path

    def extract_archive(
        self, archive_path: Path, dest_dir: Path, show_progress: bool = True
    ) -> Path:
        """Unpack a .zip or .tar.{gz,bz2,xz} archive into dest_dir.

        Raises:
            ExtractionError: If the archive is missing, unsupported or corrupt
        """
        archive_path = Path(archive_path)
        dest_dir = Path(dest_dir)

        if not archive_path.is_file():
            raise ExtractionError(f"Archive not found: {archive_path}")

        if archive_path.suffix == ".zip":
            unpack = self._extract_zip
        elif archive_path.name.endswith(TAR_SUFFIXES):
            unpack = self._extract_tar
        else:
            raise ExtractionError(f"Unsupported archive format: {archive_path.name}")

        if show_progress:
            print(f"Extracting {archive_path.name}...")

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            unpack(archive_path, dest_dir)
        except (OSError, zipfile.BadZipFile, tarfile.TarError) as e:
            raise ExtractionError(f"Failed to extract {archive_path.name}: {e}") from e

        return dest_dir

    @staticmethod
    def _extract_tar(archive_path: Path, dest_dir: Path) -> None:
        with tarfile.open(archive_path, "r:*") as tar:
            tar.extractall(dest_dir, filter="tar")

    @staticmethod
    def _extract_zip(archive_path: Path, dest_dir: Path) -> None:
        # zipfile.extractall drops permission bits and writes symlinks as
        # regular files holding the link target
        root = dest_dir.resolve()

        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                entry = root / info.filename
                target = entry.parent.resolve() / entry.name
                if target != root and root not in target.parents:
                    raise ExtractionError(f"Refusing to extract outside {dest_dir}: {info.filename}")

                mode = info.external_attr >> 16
                if stat.S_ISLNK(mode):
                    target.parent.mkdir(parents=True, exist_ok=True)
                    if target.is_symlink() or target.exists():
                        target.unlink()
                    os.symlink(zf.read(info).decode("utf-8"), target)
                    continue

                written = Path(zf.extract(info, root))
                if not info.is_dir() and stat.S_IMODE(mode):
                    written.chmod(stat.S_IMODE(mode))

    def download_and_extract(
        self,
        url: str,
        cache_dir: Path,
        extract_dir: Path,
        checksum: Optional[str] = None,
        show_progress: bool = True,
    ) -> Path:
        """Download url into cache_dir unless already there, then extract it.

        Returns:
            extract_dir
        """
        archive_path = Path(cache_dir) / archive_name(url)

        if archive_path.is_file():
            logging.info(f"Reusing downloaded {archive_path}")
        else:
            self.download(url, archive_path, checksum, show_progress)

        return self.extract_archive(archive_path, extract_dir, show_progress)
