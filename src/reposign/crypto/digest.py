import hashlib

from ..errors import DigestError

SHA256_DIGEST_SIZE = 32
_CHUNK = 64 * 1024


def sha256_file(path: str) -> bytes:
    """Raw SHA-256 of a file's full contents."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK), b""):
                h.update(chunk)
    except OSError as e:
        raise DigestError(f"cannot digest {path}: {e.strerror or e}") from e
    return h.digest()
