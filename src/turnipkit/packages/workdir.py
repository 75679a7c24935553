"""Working directory ownership for a pipeline run.

Layout:
    <parent>/
    ├── turnip_workdir.lock        # PID of the run owning the directory
    └── turnip_workdir/
        ├── android-ndk-*/         # Extracted NDK
        ├── mesa-*/                # Extracted source (+ build-android-aarch64/)
        ├── android-aarch64.txt    # Meson cross file
        ├── native.txt             # Meson native file
        ├── fake-cc/               # cc/c++ shims
        ├── meson_log, ninja_log   # External tool output
        ├── staging/               # Package trees being assembled
        └── *.zip                  # Distribution bundles

The lock marker sits next to the directory, so recreating the directory
never touches it. The marker is written to a private temp file and hard
linked into place, so it never exists without its PID. A marker whose PID no
longer exists is stale: it is renamed aside (only one contender can win the
rename), re-checked, and then replaced. A marker that cannot be parsed is
treated as held.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import psutil

UNREADABLE_PID = -1


class WorkdirError(Exception):
    """Raised when the working directory cannot be prepared."""

    pass


class WorkdirLockedError(WorkdirError):
    """Raised when another run owns the working directory."""

    def __init__(self, path: Path, pid: int, lock_file: Optional[Path] = None):
        if pid == UNREADABLE_PID:
            message = (
                f"Working directory {path} is locked by an unreadable marker {lock_file}; "
                "remove it if no other run is active"
            )
        else:
            message = f"Working directory {path} is in use by process {pid}"
        super().__init__(message)
        self.path = path
        self.pid = pid


class WorkingDirectory:
    """Exclusively owned, freshly created working directory."""

    def __init__(self, path: Path):
        self.path = Path(path).resolve()
        self.lock_file = self.path.with_name(self.path.name + ".lock")
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    @staticmethod
    def _read_pid(marker: Path) -> Optional[int]:
        """PID stored in marker, None if it is gone, UNREADABLE_PID if unparsable."""
        try:
            text = marker.read_text().strip()
        except FileNotFoundError:
            return None
        try:
            return int(text)
        except ValueError:
            return UNREADABLE_PID

    def _read_lock_pid(self) -> Optional[int]:
        return self._read_pid(self.lock_file)

    def _sibling(self, tag: str) -> Path:
        return self.lock_file.with_name(f"{self.lock_file.name}.{tag}.{os.getpid()}")

    def _link_marker(self) -> bool:
        """Publish a marker holding our PID. False if one already exists."""
        staged = self._sibling("new")
        staged.write_text(str(os.getpid()))
        try:
            os.link(staged, self.lock_file)
            return True
        except FileExistsError:
            return False
        finally:
            staged.unlink(missing_ok=True)

    def _evict_stale(self, stale_pid: int) -> None:
        """Move a dead run's marker out of the way.

        Raises:
            WorkdirLockedError: If the marker changed hands in the meantime
        """
        aside = self._sibling("stale")
        try:
            os.rename(self.lock_file, aside)
        except FileNotFoundError:
            # Another contender evicted it first
            return

        moved_pid = self._read_pid(aside)
        if moved_pid == stale_pid:
            logging.warning(f"Removed stale lock marker {self.lock_file} (pid={stale_pid})")
            aside.unlink(missing_ok=True)
            return

        # A fresh marker was published between our read and the rename; give it back
        try:
            os.link(aside, self.lock_file)
        except FileExistsError:
            pass
        finally:
            aside.unlink(missing_ok=True)
        raise WorkdirLockedError(self.path, moved_pid or UNREADABLE_PID, self.lock_file)

    def acquire(self) -> None:
        """Take the lock marker.

        Raises:
            WorkdirLockedError: If a live process holds the marker, or the
                marker cannot be parsed
            WorkdirError: If the marker cannot be written
        """
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(3):
                if self._link_marker():
                    self._locked = True
                    logging.info(f"Acquired working directory lock {self.lock_file}")
                    return

                pid = self._read_lock_pid()
                if pid is None:
                    continue
                if pid == UNREADABLE_PID or psutil.pid_exists(pid):
                    raise WorkdirLockedError(self.path, pid, self.lock_file)
                self._evict_stale(pid)
        except OSError as e:
            raise WorkdirError(f"Cannot create lock marker {self.lock_file}: {e}") from e

        raise WorkdirError(f"Could not acquire lock marker {self.lock_file}")

    def release(self) -> None:
        """Drop the lock marker if this instance holds it."""
        if not self._locked:
            return
        if self._read_lock_pid() == os.getpid():
            self.lock_file.unlink(missing_ok=True)
        self._locked = False
        logging.info(f"Released working directory lock {self.lock_file}")

    def recreate(self) -> Path:
        """Remove a previous run's directory and create an empty one.

        Returns:
            Path to the fresh directory

        Raises:
            WorkdirError: If called without holding the lock
        """
        if not self._locked:
            raise WorkdirError("Working directory must be locked before it is recreated")

        if self.path.exists():
            print("Work directory already exists. Cleaning before proceeding...")
            logging.info(f"Removing previous working directory {self.path}")
            shutil.rmtree(self.path)

        self.path.mkdir(parents=True)
        return self.path

    def __enter__(self) -> "WorkingDirectory":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
