"""Archive Creator.

This module turns a staged package tree into a distributable zip bundle.

Design:
    - Files are added in sorted order with paths relative to the tree root
    - The archive is written under a temporary name and renamed into place
      only once it is complete, so a valid-looking bundle name always means
      a finished bundle
    - A failed or interrupted write leaves no partial file behind
"""

import logging
import zipfile
from pathlib import Path
from typing import List

PARTIAL_SUFFIX = ".partial"


class ArchiveError(Exception):
    """Raised when bundle creation fails."""

    pass


class ArchiveCreator:
    """Creates zip bundles from package trees."""

    def __init__(self, show_progress: bool = True):
        """Initialize archive creator.

        Args:
            show_progress: Whether to print archive creation progress
        """
        self.show_progress = show_progress

    @staticmethod
    def collect_files(tree_dir: Path) -> List[Path]:
        """All regular files below tree_dir, sorted by relative path."""
        return sorted(
            (p for p in tree_dir.rglob("*") if p.is_file()),
            key=lambda p: p.relative_to(tree_dir).as_posix(),
        )

    def create_archive(self, tree_dir: Path, archive_path: Path) -> Path:
        """Zip every file under tree_dir into archive_path.

        Args:
            tree_dir: Root of the staged package tree
            archive_path: Final bundle path

        Returns:
            Path to the finished bundle

        Raises:
            ArchiveError: If the tree is empty or the archive cannot be written
        """
        tree_dir = Path(tree_dir)
        archive_path = Path(archive_path)

        files = self.collect_files(tree_dir) if tree_dir.is_dir() else []
        if not files:
            raise ArchiveError(f"No files to archive in {tree_dir}")

        partial_path = archive_path.with_name(archive_path.name + PARTIAL_SUFFIX)

        if self.show_progress:
            print(f"Packing {len(files)} files into {archive_path.name}...")

        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(partial_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for file_path in files:
                    zf.write(file_path, file_path.relative_to(tree_dir).as_posix())
            partial_path.replace(archive_path)
        except KeyboardInterrupt:
            partial_path.unlink(missing_ok=True)
            raise
        except (OSError, zipfile.BadZipFile) as e:
            partial_path.unlink(missing_ok=True)
            raise ArchiveError(f"Failed to create archive {archive_path.name}: {e}") from e

        size = archive_path.stat().st_size
        logging.info(f"Created {archive_path} ({size} bytes, {len(files)} files)")
        if self.show_progress:
            print(f"Created {archive_path.name}: {size:,} bytes ({size / 1024 / 1024:.2f} MB)")

        return archive_path
