"""Password-based symmetric encryption for stored chunk text."""

from __future__ import annotations

import binascii
import os

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from local_rag.core.errors import DecryptionFailed, EncryptionError

SALT_SIZE = 16
NONCE_SIZE = 12
KEY_SIZE = 32
# salt + nonce, the GCM tag comes on top of that
_HEADER_SIZE = SALT_SIZE + NONCE_SIZE


class EncryptionService:
    """AES-256-GCM with an Argon2id key derived from the password.

    Ciphertexts are hex strings laid out as ``salt | nonce | ciphertext+tag``.
    Every call draws a fresh salt and nonce, so the same plaintext never
    encrypts to the same string twice. Instances hold only the KDF cost
    parameters and are safe to share between tasks and threads.
    """

    def __init__(self, time_cost: int = 2, memory_cost: int = 19456, parallelism: int = 1) -> None:
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        return hash_secret_raw(
            secret=password.encode("utf-8"),
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=KEY_SIZE,
            type=Type.ID,
        )

    def encrypt(self, plaintext: str, password: str) -> str:
        if not password:
            raise EncryptionError("Password required for encryption")
        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        key = self._derive_key(password, salt)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        return (salt + nonce + ciphertext).hex()

    def decrypt(self, encrypted_hex: str, password: str) -> str:
        try:
            payload = bytes.fromhex(encrypted_hex)
        except ValueError as exc:
            raise DecryptionFailed(f"Invalid hex encoding: {exc}") from exc
        # GCM always appends a 16 byte tag
        if len(payload) < _HEADER_SIZE + 16:
            raise DecryptionFailed("Data too short")
        salt = payload[:SALT_SIZE]
        nonce = payload[SALT_SIZE:_HEADER_SIZE]
        key = self._derive_key(password, salt)
        try:
            plaintext = AESGCM(key).decrypt(nonce, payload[_HEADER_SIZE:], None)
        except InvalidTag as exc:
            raise DecryptionFailed("Decryption failed: wrong password or corrupted data") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionFailed(f"Invalid UTF-8: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        """Return a random 256-bit key as 64 hex characters."""
        return binascii.hexlify(os.urandom(KEY_SIZE)).decode("ascii")

    def hash_password(self, password: str) -> str:
        """Hash a password for storage as an Argon2 PHC string."""
        if not password:
            raise EncryptionError("Password cannot be empty")
        return self._hasher.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except VerificationError:
            return False
        except InvalidHashError as exc:
            raise EncryptionError(f"Invalid hash: {exc}") from exc


__all__ = ["EncryptionService"]
