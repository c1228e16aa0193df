"""
Symmetric encryption for secrets stored in the database.

Merchant credentials on payment accounts are never stored in clear text; they
are encrypted with Fernet using ``settings.ENCRYPTION_KEY``.
"""

import base64
import hashlib
import json
from typing import Any

from cryptography.fernet import Fernet
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


def get_encryption_key() -> bytes:
    key = getattr(settings, "ENCRYPTION_KEY", None)
    if not key:
        raise ImproperlyConfigured("ENCRYPTION_KEY is not configured.")

    # Arbitrary text keys are stretched into a valid 32-byte Fernet key.
    if isinstance(key, str):
        key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest())
    return key


def _fernet() -> Fernet:
    return Fernet(get_encryption_key())


def encrypt_string(plaintext: str) -> str:
    if not plaintext:
        return ""
    return _fernet().encrypt(plaintext.encode()).decode()


def decrypt_string(token: str) -> str:
    """Raises ``cryptography.fernet.InvalidToken`` when the key does not match."""
    if not token:
        return ""
    return _fernet().decrypt(token.encode()).decode()


def encrypt_json(value: Any) -> str:
    if value is None:
        return ""
    return encrypt_string(json.dumps(value, separators=(",", ":")))


def decrypt_json(token: str) -> Any:
    plaintext = decrypt_string(token)
    if not plaintext:
        return None
    return json.loads(plaintext)
