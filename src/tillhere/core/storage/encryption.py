"""Fernet-based encryption of setting values at rest.

The date of birth and the projected end date are personal data, so the
settings store can keep every value as a Fernet token instead of plain text.
Keys and value types stay in the clear so rows remain addressable.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

from tillhere.core.errors import StorageError

logger = logging.getLogger(__name__)


class EncryptionError(StorageError):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts and decrypts text values using Fernet symmetric encryption.

    Usage::

        encryptor = FieldEncryptor(key="...")
        token = encryptor.encrypt("1990-05-15T00:00:00")
        encryptor.decrypt(token)  # "1990-05-15T00:00:00"
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            key: A valid Fernet key string. Generate with
                :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, value: str | None) -> str | None:
        """Encrypt a text value to a Fernet token string. ``None`` passes through."""
        if value is None:
            return None
        return self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str | None) -> str | None:
        """Decrypt a Fernet token back to text. ``None`` passes through.

        Raises:
            EncryptionError: If the token is invalid or was made with another key.
        """
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64-encoded 32-byte Fernet key."""
        return Fernet.generate_key().decode("utf-8")
