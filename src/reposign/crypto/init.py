"""Process-wide crypto setup.

pyca/cryptography binds OpenSSL lazily; doing it once up front keeps the
first signature from paying for it and gives us a single place to log the
library version in use.
"""
from __future__ import annotations

import threading

from ..utils.logging import get_logger

_LOCK = threading.Lock()
_BACKEND_VERSION: str | None = None


def ensure_initialized() -> str:
    """Bind the OpenSSL backend once per process. Safe to call repeatedly."""
    global _BACKEND_VERSION
    with _LOCK:
        if _BACKEND_VERSION is None:
            from cryptography.hazmat.backends.openssl import backend

            _BACKEND_VERSION = backend.openssl_version_text()
            get_logger().debug("crypto backend initialized: %s", _BACKEND_VERSION)
        return _BACKEND_VERSION
