"""Read and atomically rewrite ``<repodir>/<arch>-repodata``.

The repodata file is a tar archive holding ``index.plist`` (package name to
package dictionary) and ``index-meta.plist`` (repository metadata), both XML
property lists, optionally compressed as a whole.
"""
from __future__ import annotations

import io
import os
import plistlib
import tarfile
import tempfile
import time
from typing import Any, Dict, Optional

import zstandard

from ..errors import FlushError, InvalidRepositoryError
from .model import RepoHandle

INDEX_PLIST = "index.plist"
INDEX_META_PLIST = "index-meta.plist"

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

_TAR_WRITE_MODES = {"none": "w", "gzip": "w:gz", "bzip2": "w:bz2", "xz": "w:xz"}


def repodata_path(repodir: str, arch: str) -> str:
    return os.path.join(repodir, f"{arch}-repodata")


def _load_members(raw: bytes) -> Dict[str, bytes]:
    if raw[:4] == ZSTD_MAGIC:
        raw = zstandard.ZstdDecompressor().decompressobj().decompress(raw)
    out: Dict[str, bytes] = {}
    with tarfile.open(fileobj=io.BytesIO(raw), mode="r:*") as t:
        for member in t:
            if member.name not in (INDEX_PLIST, INDEX_META_PLIST):
                continue
            f = t.extractfile(member)
            if f is None:
                continue
            with f:
                out[member.name] = f.read()
    return out


def open_repo(repodir: str, arch: str) -> RepoHandle:
    path = repodata_path(repodir, arch)
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise InvalidRepositoryError(f"cannot read repository data {path}: {e.strerror or e}") from e
    try:
        members = _load_members(raw)
        if INDEX_PLIST not in members:
            raise InvalidRepositoryError(f"{path}: missing {INDEX_PLIST}")
        index = plistlib.loads(members[INDEX_PLIST])
        meta = plistlib.loads(members[INDEX_META_PLIST]) if members.get(INDEX_META_PLIST) else {}
    except (tarfile.TarError, plistlib.InvalidFileException, zstandard.ZstdError, EOFError, ValueError) as e:
        raise InvalidRepositoryError(f"{path}: corrupt repository data: {e}") from e
    if not isinstance(index, dict) or not isinstance(meta, dict):
        raise InvalidRepositoryError(f"{path}: index and metadata must be dictionaries")
    return RepoHandle(repodir=repodir, arch=arch, index=index, meta=meta)


def _add_member(t: tarfile.TarFile, name: str, data: bytes, mtime: float) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mode = 0o644
    info.mtime = int(mtime)
    t.addfile(info, io.BytesIO(data))


def serialize(index: Dict[str, Any], meta: Optional[Dict[str, Any]], compression: str) -> bytes:
    now = time.time()
    buf = io.BytesIO()
    tar_mode = _TAR_WRITE_MODES.get(compression, "w")
    if compression not in _TAR_WRITE_MODES and compression != "zstd":
        raise FlushError(f"unsupported compression: {compression}")
    with tarfile.open(fileobj=buf, mode=tar_mode) as t:
        _add_member(t, INDEX_PLIST, plistlib.dumps(index, fmt=plistlib.FMT_XML), now)
        _add_member(t, INDEX_META_PLIST, plistlib.dumps(meta or {}, fmt=plistlib.FMT_XML), now)
    data = buf.getvalue()
    if compression == "zstd":
        data = zstandard.ZstdCompressor().compress(data)
    return data


def flush(repodir: str, arch: str, index: Dict[str, Any], meta: Optional[Dict[str, Any]], compression: str = "zstd") -> str:
    """Atomically replace the repodata file. Raises FlushError on failure."""
    target = repodata_path(repodir, arch)
    data = serialize(index, meta, compression)
    try:
        fd, tmp = tempfile.mkstemp(prefix=f".{arch}-repodata.", dir=repodir)
    except OSError as e:
        raise FlushError(f"failed to write repodata: {e.strerror or e}") from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, 0o644)
        os.replace(tmp, target)
    except OSError as e:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise FlushError(f"failed to write repodata: {e.strerror or e}") from e
    return target


__all__ = ["INDEX_PLIST", "INDEX_META_PLIST", "repodata_path", "open_repo", "serialize", "flush"]
