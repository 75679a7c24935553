"""
Two-variant packaging of the compiled driver.

Builds, from one validated library and one VersionRecord:
- the overlay module tree (Magisk/KernelSU), archived as <prefix>-<ver>-MAGISK-KSU.zip
- the emulator tree (library + meta.json), archived as <prefix>-<ver>-EMULATOR.zip

Each tree is assembled completely in <work_dir>/staging/<variant>/ before it
is archived, and the archive only takes its final name once it is complete.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..config import VersionRecord
from . import templates
from .archive_creator import ArchiveCreator, ArchiveError

OVERLAY = "overlay"
EMULATOR = "emulator"

OVERLAY_LIBRARY_DIR = "system/vendor/lib64/hw"
OVERLAY_LIBRARY_NAME = "vulkan.adreno.so"
INSTALLER_META_DIR = "META-INF/com/google/android"
EMULATOR_LIBRARY_NAME = "vulkan.turnip.so"
MANIFEST_NAME = "meta.json"
MODULE_PROP_NAME = "module.prop"

SCRIPT_MODE = 0o755


class ArtifactIntegrityError(Exception):
    """Raised when the validated library disappeared before packaging."""

    pass


class PackagingError(Exception):
    """Raised when one of the two bundles cannot be produced."""

    def __init__(self, bundle: str, message: str):
        super().__init__(f"{bundle} bundle: {message}")
        self.bundle = bundle


@dataclass
class PackagingResult:
    """Both finished distribution bundles."""

    overlay_bundle: Path
    emulator_bundle: Path


class ArtifactPackager:
    """Builds both package trees and their bundles."""

    def __init__(
        self,
        work_dir: Path,
        archive_creator: Optional[ArchiveCreator] = None,
        show_progress: bool = True,
    ):
        """
        Args:
            work_dir: Working directory; bundles are written to its root
            archive_creator: Archiver to use (default ArchiveCreator)
            show_progress: Whether to print progress lines
        """
        self.work_dir = Path(work_dir)
        self.archive_creator = archive_creator or ArchiveCreator(show_progress)
        self.show_progress = show_progress

    @property
    def staging_root(self) -> Path:
        return self.work_dir / "staging"

    def _fresh_stage(self, variant: str) -> Path:
        stage = self.staging_root / variant
        if stage.exists():
            shutil.rmtree(stage)
        stage.mkdir(parents=True)
        return stage

    @staticmethod
    def _copy_artifact(artifact: Path, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copyfile(artifact, dest)
        except FileNotFoundError as e:
            raise ArtifactIntegrityError(
                f"Driver library vanished before packaging: {artifact}"
            ) from e

    @staticmethod
    def _write(path: Path, content: str, mode: Optional[int] = None) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)

    def build_overlay_tree(self, artifact: Path, record: VersionRecord) -> Path:
        """Assemble the Magisk/KernelSU module tree.

        Returns:
            Root of the staged tree
        """
        stage = self._fresh_stage(OVERLAY)
        library_path = f"{OVERLAY_LIBRARY_DIR}/{OVERLAY_LIBRARY_NAME}"

        self._copy_artifact(artifact, stage / library_path)

        meta_dir = stage / INSTALLER_META_DIR
        self._write(meta_dir / "update-binary", templates.render_update_binary(), SCRIPT_MODE)
        self._write(meta_dir / "updater-script", templates.UPDATER_SCRIPT)
        self._write(stage / "customize.sh", templates.render_customize(record, library_path), SCRIPT_MODE)
        self._write(stage / "uninstall.sh", templates.render_uninstall(), SCRIPT_MODE)
        self._write(stage / MODULE_PROP_NAME, templates.render_module_prop(record))
        return stage

    def build_emulator_tree(self, artifact: Path, record: VersionRecord) -> Path:
        """Assemble the emulator tree (library + manifest at the root).

        Returns:
            Root of the staged tree
        """
        stage = self._fresh_stage(EMULATOR)
        self._copy_artifact(artifact, stage / EMULATOR_LIBRARY_NAME)
        self._write(stage / MANIFEST_NAME, templates.render_manifest(record, EMULATOR_LIBRARY_NAME))
        return stage

    def _produce(
        self,
        variant: str,
        build_tree: Callable[[Path, VersionRecord], Path],
        artifact: Path,
        record: VersionRecord,
        bundle_name: str,
    ) -> Path:
        if self.show_progress:
            print(f"Preparing {variant} package...")
        try:
            stage = build_tree(artifact, record)
            bundle = self.archive_creator.create_archive(stage, self.work_dir / bundle_name)
        except ArchiveError as e:
            raise PackagingError(variant, str(e)) from e
        except OSError as e:
            raise PackagingError(variant, f"failed to assemble package tree: {e}") from e
        logging.info(f"{variant} bundle ready: {bundle}")
        return bundle

    def package(self, artifact: Path, record: VersionRecord) -> PackagingResult:
        """Produce both bundles.

        Args:
            artifact: The validated driver library
            record: Release metadata

        Returns:
            PackagingResult with both bundle paths

        Raises:
            VersionRecordError: If the record is incomplete (nothing is written)
            ArtifactIntegrityError: If the library is missing
            PackagingError: If a tree or archive cannot be produced
        """
        record.validate()

        artifact = Path(artifact)
        if not artifact.is_file():
            raise ArtifactIntegrityError(f"Driver library not found: {artifact}")

        overlay_bundle = self._produce(
            OVERLAY, self.build_overlay_tree, artifact, record, record.overlay_bundle_name
        )
        emulator_bundle = self._produce(
            EMULATOR, self.build_emulator_tree, artifact, record, record.emulator_bundle_name
        )
        return PackagingResult(overlay_bundle=overlay_bundle, emulator_bundle=emulator_bundle)
