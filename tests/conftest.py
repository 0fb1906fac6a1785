import multiprocessing
import os
from contextlib import contextmanager

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from reposign.config import Settings
from reposign.repo import repodata
from reposign.errors import LockError
from reposign.repo.lock import acquire, release, repo_lock

ARCH = "x86_64"

PACKAGES = {
    "foo": {"pkgver": "foo-1.0_1", "architecture": ARCH, "filename-sha256": "00" * 32},
    "bar": {"pkgver": "bar-2.3_2", "architecture": ARCH, "filename-sha256": "11" * 32},
}


def write_key(path, key, password: bytes | None = None, fmt=serialization.PrivateFormat.TraditionalOpenSSL):
    enc = serialization.BestAvailableEncryption(password) if password else serialization.NoEncryption()
    path.write_bytes(key.private_bytes(serialization.Encoding.PEM, fmt, enc))
    return str(path)


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def key_path(tmp_path_factory, rsa_key):
    return write_key(tmp_path_factory.mktemp("keys") / "id_rsa", rsa_key)


@pytest.fixture
def settings(key_path, monkeypatch):
    monkeypatch.delenv("XBPS_PASSPHRASE", raising=False)
    return Settings(arch=ARCH, default_privkey=key_path, compression="zstd")


@pytest.fixture
def make_repo(tmp_path):
    def _make(packages=None, meta=None, compression="zstd"):
        repodir = tmp_path / "repo"
        repodir.mkdir(exist_ok=True)
        repodata.flush(str(repodir), ARCH, dict(PACKAGES if packages is None else packages), meta, compression)
        return str(repodir)

    return _make


def _hold(repodir, arch, ready, done):
    with repo_lock(repodir, arch):
        ready.set()
        done.wait(10)


class LockHolder:
    """Child process that takes the repository lock (lockf is per-process)."""

    def __init__(self, repodir, arch=ARCH):
        ctx = multiprocessing.get_context("fork")
        self.ready, self.done = ctx.Event(), ctx.Event()
        self.proc = ctx.Process(target=_hold, args=(repodir, arch, self.ready, self.done))

    def start(self):
        self.proc.start()
        return self

    def stop(self):
        self.done.set()
        self.proc.join(10)


@contextmanager
def lock_held_elsewhere(repodir, arch=ARCH):
    holder = LockHolder(repodir, arch).start()
    try:
        assert holder.ready.wait(10), "child never took the lock"
        yield holder
    finally:
        holder.stop()


def _try_lock(repodir, arch, result):
    try:
        release(acquire(repodir, arch, wait=False))
        result.value = 1
    except LockError:
        result.value = 0


def lock_is_free(repodir, arch=ARCH):
    """Whether another process could take the repository lock right now."""
    ctx = multiprocessing.get_context("fork")
    result = ctx.Value("i", -1)
    proc = ctx.Process(target=_try_lock, args=(repodir, arch, result))
    proc.start()
    proc.join(10)
    return result.value == 1


class FlushSpy:
    def __init__(self):
        self.calls = []

    def __call__(self, repodir, arch, index, meta, compression):
        self.calls.append((repodir, arch, dict(index), dict(meta or {}), compression))
        assert not lock_is_free(repodir, arch), "flush outside the lock"
        return repodata.flush(repodir, arch, index, meta, compression)


@pytest.fixture
def flush_spy():
    return FlushSpy()
