"""Exclusive lock files guarding mutating operations against concurrent runs."""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from types import TracebackType
from typing import Optional

LOGGER = logging.getLogger(__name__)


class LockError(RuntimeError):
    """Raised when another invocation already holds the lock."""


def _lock(fd: int) -> None:
    if platform.system() == "Windows":
        import msvcrt

        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
    else:
        import fcntl

        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock(fd: int) -> None:
    if platform.system() == "Windows":
        import msvcrt

        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        import fcntl

        fcntl.flock(fd, fcntl.LOCK_UN)


class WorkspaceLock:
    """Non-blocking OS-level lock on a file.

    Uses ``msvcrt`` on Windows and ``fcntl`` elsewhere. Acquisition never
    waits: a second holder fails immediately with :class:`LockError`.

    Example:
        >>> with WorkspaceLock(Path("backups/.pinevault.lock")):
        ...     pass
    """

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = lock_path
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """Acquire the lock.

        Raises:
            LockError: If the lock is held elsewhere or cannot be created.
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        while True:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_WRONLY)
            try:
                _lock(fd)
            except OSError as exc:
                os.close(fd)
                raise LockError(
                    f"Another pinevault run holds {self.lock_path}; retry once it finishes."
                ) from exc
            if self._is_current(fd):
                break
            # The previous holder unlinked the file between our open and lock.
            _unlock(fd)
            os.close(fd)
        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode("ascii"))
        self._fd = fd
        LOGGER.debug("Acquired lock %s", self.lock_path)

    def release(self) -> None:
        """Remove the lock file, then unlock it. Safe to call when not held."""
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        # POSIX: unlink while still locked so no other run can lock this inode by path.
        # Windows cannot unlink an open file, so it removes the file after closing.
        windows = platform.system() == "Windows"
        if not windows:
            self._remove_file()
        try:
            _unlock(fd)
        except OSError as exc:
            LOGGER.warning("Error releasing lock %s: %s", self.lock_path, exc)
        finally:
            os.close(fd)
        if windows:
            self._remove_file()

    def _remove_file(self) -> None:
        try:
            self.lock_path.unlink()
        except OSError as exc:
            LOGGER.warning("Could not delete lock file %s: %s", self.lock_path, exc)

    def _is_current(self, fd: int) -> bool:
        if platform.system() == "Windows":
            return True
        try:
            return os.fstat(fd).st_ino == os.stat(self.lock_path).st_ino
        except FileNotFoundError:
            return False

    def __enter__(self) -> "WorkspaceLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


__all__ = ["LockError", "WorkspaceLock"]
