"""Cross-process exclusive lock on a repository directory."""
from __future__ import annotations

import errno
import fcntl
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from ..errors import LockError
from ..utils.logging import get_logger


@dataclass(frozen=True)
class RepoLock:
    fd: int
    path: str


def lock_path(repodir: str, arch: str) -> str:
    return os.path.join(repodir, f"{arch}-repodata.lock")


def acquire(repodir: str, arch: str, wait: bool = True) -> RepoLock:
    path = lock_path(repodir, arch)
    try:
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o664)
    except OSError as e:
        raise LockError(f"cannot lock repository: {path}: {e.strerror or e}") from e
    try:
        fcntl.lockf(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as e:
        if e.errno not in (errno.EAGAIN, errno.EACCES):
            os.close(fd)
            raise LockError(f"cannot lock repository: {path}: {e.strerror or e}") from e
        if not wait:
            os.close(fd)
            raise LockError(f"cannot lock repository: {path} is held by another process") from e
        get_logger().info("repository %s locked, waiting...", repodir)
        try:
            fcntl.lockf(fd, fcntl.LOCK_EX)
        except OSError as e2:
            os.close(fd)
            raise LockError(f"cannot lock repository: {path}: {e2.strerror or e2}") from e2
    return RepoLock(fd=fd, path=path)


def release(lock: RepoLock) -> None:
    # the lock file stays: a waiter may already hold an fd on it
    os.close(lock.fd)


@contextmanager
def repo_lock(repodir: str, arch: str, wait: bool = True) -> Iterator[RepoLock]:
    lock = acquire(repodir, arch, wait=wait)
    try:
        yield lock
    finally:
        release(lock)


__all__ = ["RepoLock", "lock_path", "acquire", "release", "repo_lock"]
