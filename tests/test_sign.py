import hashlib

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from reposign.crypto.digest import sha256_file
from reposign.crypto.keyloader import SigningKey
from reposign.crypto.sign import legacy_digest_info, sign_digest, sign_file
from reposign.errors import DigestError, SignError


def _recover(rsa_key, sig: bytes) -> bytes:
    return rsa_key.public_key().recover_data_from_signature(sig, padding.PKCS1v15(), None)


def test_digest_info_declares_sha1_over_sha256_bytes():
    digest = hashlib.sha256(b"x").digest()
    info = legacy_digest_info(digest)
    assert info[:15] == bytes.fromhex("302d300906052b0e03021a05000420")
    assert info[15:] == digest
    assert len(info) == 47


def test_signature_carries_legacy_identifier(tmp_path, rsa_key):
    f = tmp_path / "pkg.xbps"
    f.write_bytes(b"package payload" * 1000)
    with SigningKey.from_private_key(rsa_key) as key:
        sig = sign_file(key, str(f))
    assert len(sig) == 256
    assert _recover(rsa_key, sig.data) == legacy_digest_info(hashlib.sha256(f.read_bytes()).digest())


def test_signature_is_not_a_standard_sha256_signature(tmp_path, rsa_key):
    f = tmp_path / "pkg.xbps"
    f.write_bytes(b"abc")
    with SigningKey.from_private_key(rsa_key) as key:
        sig = sign_file(key, str(f))
    with pytest.raises(InvalidSignature):
        rsa_key.public_key().verify(sig.data, sha256_file(str(f)), padding.PKCS1v15(), Prehashed(hashes.SHA256()))


def test_same_file_same_signature_different_file_different(tmp_path, rsa_key):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"one")
    b.write_bytes(b"two")
    with SigningKey.from_private_key(rsa_key) as key:
        s1 = sign_file(key, str(a))
        s2 = sign_file(key, str(a))
        s3 = sign_file(key, str(b))
    assert s1 == s2
    assert s1 != s3
    assert _recover(rsa_key, s3.data)[15:] == hashlib.sha256(b"two").digest()


def test_empty_file(tmp_path, rsa_key):
    f = tmp_path / "empty"
    f.write_bytes(b"")
    with SigningKey.from_private_key(rsa_key) as key:
        sig = sign_file(key, str(f))
    assert _recover(rsa_key, sig.data)[15:] == hashlib.sha256(b"").digest()


def test_unreadable_file_is_digest_error(tmp_path, rsa_key):
    with SigningKey.from_private_key(rsa_key) as key:
        with pytest.raises(DigestError):
            sign_file(key, str(tmp_path / "missing"))


def test_wrong_digest_length_is_sign_error(rsa_key):
    with SigningKey.from_private_key(rsa_key) as key:
        with pytest.raises(SignError):
            sign_digest(key, b"\x00" * 20)


def test_released_key_cannot_sign(rsa_key):
    key = SigningKey.from_private_key(rsa_key)
    key.close()
    with pytest.raises(SignError):
        sign_digest(key, b"\x00" * 32)


def test_public_only_key_is_sign_error(rsa_key, monkeypatch):
    from Crypto.PublicKey import RSA

    n = rsa_key.private_numbers().public_numbers
    monkeypatch.setattr("reposign.crypto.sign._rsa_key", lambda sk: RSA.construct((n.n, n.e)))
    with SigningKey.from_private_key(rsa_key) as key:
        with pytest.raises(SignError):
            sign_digest(key, b"\x00" * 32)
