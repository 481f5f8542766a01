"""Tests for the encryption service."""

from __future__ import annotations

import pytest

from local_rag.core.errors import DecryptionFailed, EncryptionError
from local_rag.security.encryption import EncryptionService


def test_encrypt_decrypt(encryption: EncryptionService) -> None:
    data = "Hello, World! é\U0001F600"
    encrypted = encryption.encrypt(data, "my_secure_password")
    assert encrypted != data
    assert encryption.decrypt(encrypted, "my_secure_password") == data


def test_ciphertexts_are_salted(encryption: EncryptionService) -> None:
    first = encryption.encrypt("same text", "pw")
    second = encryption.encrypt("same text", "pw")
    assert first != second
    # salt(16) + nonce(12) + plaintext(9) + tag(16), hex encoded
    assert len(first) == 2 * (16 + 12 + 9 + 16)


def test_wrong_password_fails(encryption: EncryptionService) -> None:
    encrypted = encryption.encrypt("secret", "my_secure_password")
    with pytest.raises(DecryptionFailed):
        encryption.decrypt(encrypted, "wrong_password")


@pytest.mark.parametrize("payload", ["zz-not-hex", "00ff", ""])
def test_malformed_payload_fails(encryption: EncryptionService, payload: str) -> None:
    with pytest.raises(DecryptionFailed):
        encryption.decrypt(payload, "pw")


def test_tampered_ciphertext_fails(encryption: EncryptionService) -> None:
    encrypted = encryption.encrypt("secret", "pw")
    flipped = encrypted[:-2] + ("00" if encrypted[-2:] != "00" else "11")
    with pytest.raises(DecryptionFailed):
        encryption.decrypt(flipped, "pw")


def test_empty_password_rejected_for_encrypt(encryption: EncryptionService) -> None:
    with pytest.raises(EncryptionError):
        encryption.encrypt("secret", "")


def test_generate_key(encryption: EncryptionService) -> None:
    key1 = encryption.generate_key()
    key2 = encryption.generate_key()
    assert key1 != key2
    assert len(key1) == 64


def test_password_hashing(encryption: EncryptionService) -> None:
    password_hash = encryption.hash_password("my_password")
    assert password_hash.startswith("$argon2")
    assert encryption.verify_password("my_password", password_hash)
    assert not encryption.verify_password("wrong_password", password_hash)
