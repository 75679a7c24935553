"""Removal of transient build scaffolding after a successful run."""

import logging
import shutil
from pathlib import Path
from typing import List

from .shims import CompilerShims


class Cleanup:
    """Deletes the compiler shims and the package staging trees.

    Every removal is attempted; failures are logged and reported, never raised.
    """

    def __init__(self, work_dir: Path):
        self.work_dir = Path(work_dir)
        self.shims = CompilerShims(self.work_dir)

    def targets(self) -> List[Path]:
        return [self.shims.shim_dir, self.work_dir / "staging"]

    def run(self) -> List[Path]:
        """Remove every target.

        Returns:
            Paths that could not be removed
        """
        failed = []
        for path in self.targets():
            try:
                if path.is_symlink() or path.is_file():
                    path.unlink()
                elif path.is_dir():
                    shutil.rmtree(path)
            except OSError as e:
                logging.warning(f"Cleanup could not remove {path}: {e}")
                failed.append(path)
        return failed
