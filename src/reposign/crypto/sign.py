"""Detached RSA signatures for repository files.

Signature format
----------------
PKCS#1 v1.5 (RFC 8017 section 9.2) over a DigestInfo whose AlgorithmIdentifier
is **SHA-1** while the OCTET STRING carries the 32-byte **SHA-256** digest of
the file::

    30 2d                      SEQUENCE
       30 09                   SEQUENCE
          06 05 2b0e03021a     OID 1.3.14.3.2.26 (sha1)
          05 00                NULL
       04 20 <sha256 digest>   OCTET STRING (32 bytes)

This is what ``RSA_sign(NID_sha1, sha256, 32, ...)`` produces and what every
existing verifier of these repositories expects. Do not replace the OID with
the SHA-256 one: the signed bytes are already the SHA-256 digest, and changing
the identifier breaks every deployed client.

pyca/cryptography refuses a prehashed SHA-1 input of the wrong length, so the
key numbers are handed to pycryptodome, whose PKCS#1 v1.5 signer takes the
OID and digest bytes from the hash object as given and blinds the private
operation. ``legacy_digest_info`` builds the same DigestInfo for verifiers.
"""
from __future__ import annotations

from dataclasses import dataclass

from Crypto.PublicKey import RSA
from Crypto.Signature import pkcs1_15

from .digest import SHA256_DIGEST_SIZE, sha256_file
from .keyloader import SigningKey
from ..errors import SignError

SHA1_OID = "1.3.14.3.2.26"
SHA1_ALGORITHM_ID = bytes.fromhex("3009" "06052b0e03021a" "0500")


@dataclass(frozen=True)
class Signature:
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


def _der_len(n: int) -> bytes:
    if n < 0x80:
        return bytes([n])
    raw = n.to_bytes((n.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(raw)]) + raw


def legacy_digest_info(digest: bytes) -> bytes:
    octets = b"\x04" + _der_len(len(digest)) + digest
    body = SHA1_ALGORITHM_ID + octets
    return b"\x30" + _der_len(len(body)) + body


class _LegacyDigest:
    """A finished SHA-256 digest presented under the SHA-1 identifier."""

    oid = SHA1_OID
    digest_size = SHA256_DIGEST_SIZE

    def __init__(self, digest: bytes):
        self._digest = digest

    def digest(self) -> bytes:
        return self._digest


def _rsa_key(sk) -> RSA.RsaKey:
    priv = sk.private_numbers()
    pub = priv.public_numbers
    return RSA.construct((pub.n, pub.e, priv.d, priv.p, priv.q))


def sign_digest(key: SigningKey, digest: bytes) -> Signature:
    if len(digest) != SHA256_DIGEST_SIZE:
        raise SignError(f"expected a {SHA256_DIGEST_SIZE}-byte digest, got {len(digest)}")
    try:
        sk = key.require()
    except ValueError as e:
        raise SignError(str(e)) from e
    try:
        data = pkcs1_15.new(_rsa_key(sk)).sign(_LegacyDigest(digest))
    except (ValueError, TypeError) as e:
        # TypeError: modulus too short for the encoded digest info
        raise SignError(f"RSA signing failed: {e}") from e
    return Signature(data)


def sign_file(key: SigningKey, path: str) -> Signature:
    return sign_digest(key, sha256_file(path))


__all__ = ["Signature", "legacy_digest_info", "sign_digest", "sign_file"]
