"""
Field-level encryption for the record store boundary.

The engine only ever produces the plaintext encryption composite
(``shard_identifier_salt``); the record store encodes it through a
``FieldEncryptor`` before it reaches a column, and decodes it on the way out.
Uses Fernet symmetric encryption (AES-128-CBC with HMAC).

Generate a key with:
    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Base exception for encryption errors"""
    pass


class DecryptionError(EncryptionError):
    """Raised when decryption fails"""
    pass


class FieldEncryptor:
    """Encrypts and decrypts single string fields with one Fernet key."""

    def __init__(self, key: str):
        try:
            self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Invalid encryption key format: {e}") from e

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise DecryptionError("Invalid encryption token - data may be corrupted or key mismatch") from e


def generate_encryption_key() -> str:
    """Generate a new Fernet encryption key."""
    return Fernet.generate_key().decode("utf-8")
