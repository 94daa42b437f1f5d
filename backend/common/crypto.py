"""
Encryption for provider secrets stored on the tenant (e.g. MercadoPago tokens).

Fernet (AES-128-CBC + HMAC). The key comes from settings.ENCRYPTION_KEY; when it
is empty a key is derived from SECRET_KEY so dev setups work out of the box.
"""
from __future__ import annotations

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings

logger = logging.getLogger(__name__)


class DecryptionError(ValueError):
    pass


def _derive_key(secret: str) -> bytes:
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


class EncryptionService:
    def __init__(self, encryption_key: Optional[str] = None):
        key = encryption_key or getattr(settings, "ENCRYPTION_KEY", "")
        if key:
            key_bytes = key.encode("utf-8") if isinstance(key, str) else key
            if len(key_bytes) != 44:
                raise ValueError(f"Invalid ENCRYPTION_KEY length: {len(key_bytes)} bytes. Expected 44 bytes.")
        else:
            key_bytes = _derive_key(settings.SECRET_KEY)
        self.cipher = Fernet(key_bytes)

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("Cannot encrypt empty string")
        return self.cipher.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        if not ciphertext:
            raise ValueError("Cannot decrypt empty string")
        try:
            return self.cipher.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            logger.error("Decryption failed: invalid token or wrong key")
            raise DecryptionError("Decryption failed") from e


def encrypt_value(plaintext: str) -> str:
    return EncryptionService().encrypt(plaintext)


def decrypt_value(ciphertext: str) -> str:
    return EncryptionService().decrypt(ciphertext)
