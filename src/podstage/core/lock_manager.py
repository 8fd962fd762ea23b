"""Advisory directory locks for pod lifecycle control.

Locks are ``flock(2)`` locks taken on a read-only descriptor of the pod
directory itself. Ownership is tied to the open file description, not to
any record kept here: closing every descriptor that refers to it, including
by process death, releases the lock. The rest of the lifecycle relies on
that implicit release to observe pod exit.

flock locks belong to the open file description, so two acquisitions in
the same process contend with each other exactly as two processes would.
"""

import errno
import fcntl
import logging
import os
from enum import Enum
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)


class LockError(Exception):
    """Error acquiring or managing a directory lock."""


class LockBusyError(LockError):
    """Non-blocking acquisition found the lock held incompatibly."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"lock busy: {path}")
        self.path = path


class LockMode(str, Enum):
    """flock lock modes."""

    EXCLUSIVE = "exclusive"
    SHARED = "shared"

    @property
    def flock_op(self) -> int:
        return fcntl.LOCK_EX if self is LockMode.EXCLUSIVE else fcntl.LOCK_SH


class DirLock:
    """A held lock on a directory.

    The handle owns its descriptor. Renaming the directory while the lock is
    held keeps the lock, since it is bound to the inode, not to the path.
    """

    def __init__(self, path: Path, fd: int, mode: LockMode) -> None:
        self.path = path
        self.fd = fd
        self.mode = mode

    @classmethod
    def from_fd(cls, fd: int, path: Path, mode: LockMode = LockMode.EXCLUSIVE) -> "DirLock":
        """Wrap a descriptor inherited from a parent that already holds the lock."""
        os.fstat(fd)  # EBADF if the descriptor was not inherited
        return cls(path, fd, mode)

    @property
    def held(self) -> bool:
        return self.fd >= 0

    def set_inheritable(self, inheritable: bool) -> None:
        """Toggle whether the descriptor survives exec."""
        if not self.held:
            raise LockError(f"lock on {self.path} already released")
        os.set_inheritable(self.fd, inheritable)

    def release(self) -> None:
        """Unlock and close the descriptor. Safe to call more than once."""
        if not self.held:
            return
        fd, self.fd = self.fd, -1
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def close(self) -> None:
        """Close our descriptor without unlocking.

        An explicit unlock would drop the lock for every process sharing the
        open file description. Closing only our copy leaves it held by any
        child that inherited the descriptor.
        """
        if not self.held:
            return
        fd, self.fd = self.fd, -1
        os.close(fd)

    def __enter__(self) -> "DirLock":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "held" if self.held else "released"
        return f"DirLock({str(self.path)!r}, {self.mode.value}, {state})"


def acquire_lock(
    path: Path,
    mode: LockMode = LockMode.EXCLUSIVE,
    *,
    blocking: bool = True,
    inheritable: bool = False,
) -> DirLock:
    """Acquire a lock on a directory.

    Args:
        path: Directory to lock
        mode: Exclusive or shared
        blocking: Wait for the lock instead of failing when it is held
        inheritable: Keep the descriptor open across exec

    Returns:
        The held lock

    Raises:
        LockBusyError: Non-blocking acquisition and the lock is held incompatibly
        FileNotFoundError: The directory does not exist (anymore)
        NotADirectoryError: The path is not a directory
    """
    fd = os.open(path, os.O_RDONLY | os.O_DIRECTORY)
    op = mode.flock_op if blocking else mode.flock_op | fcntl.LOCK_NB
    try:
        fcntl.flock(fd, op)
    except OSError as e:
        os.close(fd)
        if e.errno in (errno.EWOULDBLOCK, errno.EAGAIN):
            raise LockBusyError(path) from None
        raise
    if inheritable:
        os.set_inheritable(fd, True)
    return DirLock(path, fd, mode)


def try_acquire_lock(path: Path, mode: LockMode = LockMode.EXCLUSIVE) -> DirLock | None:
    """Acquire a lock without blocking.

    Returns:
        The held lock, or None if it is held incompatibly elsewhere
    """
    try:
        return acquire_lock(path, mode, blocking=False)
    except LockBusyError:
        logger.debug(f"Lock busy ({mode.value}): {path}")
        return None


def is_locked(path: Path) -> bool:
    """Sample whether any process holds an exclusive lock on ``path``.

    The answer is only valid at the instant of sampling.

    Raises:
        FileNotFoundError: The directory does not exist (anymore)
    """
    lock = try_acquire_lock(path, LockMode.SHARED)
    if lock is None:
        return True
    lock.release()
    return False
