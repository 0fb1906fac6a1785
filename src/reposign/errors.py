"""Error taxonomy for repository and package signing.

Every failure is fatal to the operation that raised it; nothing here is
retried automatically.
"""
from __future__ import annotations


class RepoSignError(RuntimeError):
    pass


class ConfigError(RepoSignError):
    pass


class KeyLoadError(RepoSignError):
    """Private key missing, unreadable, undecryptable or not RSA.

    ``reason`` is ``"not-found"`` when the file could not be opened and
    ``"invalid"`` when its contents could not be parsed or decrypted.
    """

    def __init__(self, path: str, reason: str, detail: str = ""):
        self.path = path
        self.reason = reason
        msg = f"failed to read the RSA privkey {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InvalidRepositoryError(RepoSignError):
    pass


class LockError(RepoSignError):
    pass


class DigestError(RepoSignError):
    pass


class SignError(RepoSignError):
    pass


class SignatureWriteError(RepoSignError):
    pass


class FlushError(RepoSignError):
    pass


__all__ = [
    "RepoSignError",
    "ConfigError",
    "KeyLoadError",
    "InvalidRepositoryError",
    "LockError",
    "DigestError",
    "SignError",
    "SignatureWriteError",
    "FlushError",
]
