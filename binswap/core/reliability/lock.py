"""
Transition lock — advisory flock around install/uninstall.

Two transitions racing on the same install/backup pair can leave the
backup holding the wrong bytes. The lock file lives next to the install
target, so every binswap invocation aimed at that path contends on it
regardless of which project it was started from.

Non-blocking: a second transition fails fast instead of queueing
behind the first.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)


class LockUnavailable(Exception):
    """Raised when the lock is held by another process or cannot be opened."""


class TransitionLock:
    """Exclusive advisory lock on a file.

    Usage:
        with TransitionLock(layout.lock_path):
            ...observe, plan, execute...
    """

    def __init__(self, path: Path):
        self._path = path
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise LockUnavailable(f"Cannot open lock file {self._path}: {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            if e.errno in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
                raise LockUnavailable(
                    f"Another install/uninstall is in progress (lock: {self._path})"
                ) from e
            raise LockUnavailable(f"Cannot lock {self._path}: {e}") from e

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug("Acquired transition lock %s", self._path)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug("Released transition lock %s", self._path)

    def __enter__(self) -> TransitionLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
