from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ..config import Settings, load_settings
from ..errors import KeyLoadError
from .init import ensure_initialized


@dataclass
class SigningKey:
    """RSA private key plus the public identity derived from it.

    Use as a context manager; the private key reference is dropped on exit.
    """

    private_key: Optional[RSAPrivateKey] = field(repr=False)
    public_key_pem: bytes
    public_key_size: int
    path: str = ""

    @classmethod
    def from_private_key(cls, sk: RSAPrivateKey, path: str = "") -> "SigningKey":
        pem = sk.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        # RSA_size() * 8: byte length of the modulus, not the nominal key size
        n = sk.private_numbers().public_numbers.n
        size = ((n.bit_length() + 7) // 8) * 8
        return cls(private_key=sk, public_key_pem=pem, public_key_size=size, path=path)

    def require(self) -> RSAPrivateKey:
        if self.private_key is None:
            raise ValueError("signing key already released")
        return self.private_key

    def close(self) -> None:
        self.private_key = None

    def __enter__(self) -> "SigningKey":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def load_key(path: str | None = None, settings: Settings | None = None) -> SigningKey:
    settings = settings or load_settings()
    ensure_initialized()
    key_path = path or settings.default_privkey
    try:
        with open(key_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise KeyLoadError(key_path, "not-found", e.strerror or str(e)) from e
    passphrase = settings.passphrase()
    try:
        try:
            sk = serialization.load_pem_private_key(data, password=passphrase)
        except TypeError:
            # a passphrase in the environment does not apply to a clear key
            if passphrase is None:
                raise
            sk = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(key_path, "invalid", str(e)) from e
    if not isinstance(sk, RSAPrivateKey):
        raise KeyLoadError(key_path, "invalid", "not an RSA private key")
    return SigningKey.from_private_key(sk, path=key_path)


__all__ = ["SigningKey", "load_key"]
