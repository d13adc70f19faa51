"""Serialization of cached analysis payloads, optionally Fernet-encrypted.

Cached analyses are derived from personal health answers. When a key is
configured they are encrypted at rest; without one they are stored as
canonical JSON so the cache still works in development.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a payload cannot be sealed or opened."""


class PayloadCipher:
    """Seals JSON-serializable payloads for storage and opens them again.

    Usage::

        cipher = PayloadCipher(key=Fernet.generate_key().decode())
        stored, encrypted = cipher.seal({"overallGrade": "B"})
        cipher.open(stored, encrypted)  # {"overallGrade": "B"}
    """

    def __init__(self, key: str = "") -> None:
        """Initialize with an optional Fernet key.

        Raises:
            EncryptionError: If a non-empty key is not a valid Fernet key.
        """
        self._fernet: Fernet | None = None
        if key and key.strip():
            try:
                self._fernet = Fernet(key.strip().encode())
            except ValueError as exc:
                raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def seal(self, data: Any) -> tuple[str, bool]:
        """Serialize ``data``; returns (stored text, whether it is encrypted)."""
        try:
            plaintext = json.dumps(data, sort_keys=True, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Payload is not JSON-serializable: {exc}") from exc
        if self._fernet is None:
            return plaintext, False
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8"), True

    def open(self, stored: str, encrypted: bool) -> Any:
        """Reverse :meth:`seal`.

        Raises:
            EncryptionError: If the payload is encrypted and no key (or the
                wrong key) is configured, or the JSON is corrupt.
        """
        if encrypted:
            if self._fernet is None:
                raise EncryptionError("Payload is encrypted but no key is configured")
            try:
                stored = self._fernet.decrypt(stored.encode("utf-8")).decode("utf-8")
            except InvalidToken as exc:
                raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        try:
            return json.loads(stored)
        except ValueError as exc:
            raise EncryptionError(f"Stored payload is not valid JSON: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key."""
        return Fernet.generate_key().decode("utf-8")
