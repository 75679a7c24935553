"""Unit tests for ArchiveCreator."""

import zipfile
from unittest.mock import patch

import pytest

from turnipkit.bundle import ArchiveCreator, ArchiveError
from turnipkit.bundle.archive_creator import PARTIAL_SUFFIX


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "tree"
    (root / "b" / "c").mkdir(parents=True)
    (root / "z.txt").write_text("z")
    (root / "a.txt").write_text("a")
    (root / "b" / "c" / "d.txt").write_text("d")
    return root


class TestArchiveCreator:
    def test_entries_sorted_and_relative(self, tree, tmp_path):
        bundle = ArchiveCreator(show_progress=False).create_archive(tree, tmp_path / "out.zip")

        with zipfile.ZipFile(bundle) as zf:
            assert zf.namelist() == ["a.txt", "b/c/d.txt", "z.txt"]
            assert zf.read("b/c/d.txt") == b"d"
            assert zf.testzip() is None

    def test_no_partial_left_behind(self, tree, tmp_path):
        ArchiveCreator(show_progress=False).create_archive(tree, tmp_path / "out.zip")
        assert not (tmp_path / ("out.zip" + PARTIAL_SUFFIX)).exists()

    def test_empty_tree(self, tmp_path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(ArchiveError, match="No files"):
            ArchiveCreator(show_progress=False).create_archive(tmp_path / "empty", tmp_path / "out.zip")
        assert not (tmp_path / "out.zip").exists()

    def test_write_failure_removes_partial(self, tree, tmp_path):
        with patch("zipfile.ZipFile.write", side_effect=OSError("disk full")):
            with pytest.raises(ArchiveError, match="disk full"):
                ArchiveCreator(show_progress=False).create_archive(tree, tmp_path / "out.zip")
        assert not (tmp_path / "out.zip").exists()
        assert not (tmp_path / ("out.zip" + PARTIAL_SUFFIX)).exists()

    def test_interrupt_removes_partial(self, tree, tmp_path):
        with patch("zipfile.ZipFile.write", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                ArchiveCreator(show_progress=False).create_archive(tree, tmp_path / "out.zip")
        assert not (tmp_path / "out.zip").exists()
        assert not (tmp_path / ("out.zip" + PARTIAL_SUFFIX)).exists()

    def test_existing_bundle_replaced(self, tree, tmp_path):
        target = tmp_path / "out.zip"
        target.write_bytes(b"old")
        ArchiveCreator(show_progress=False).create_archive(tree, target)
        assert zipfile.is_zipfile(target)
