"""Encryption of stored storage credentials."""

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken

from gangsheet_api.config import settings


def _get_fernet() -> Fernet:
    """Build a Fernet from the configured secret.

    Any string works as the secret: a proper Fernet key is used as is,
    anything else is stretched to 32 bytes with SHA-256.
    """
    secret = settings.storage_encryption_key.encode()
    try:
        return Fernet(secret)
    except ValueError:
        return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret).digest()))


def encrypt_credentials(credentials: Dict[str, Any]) -> str:
    """Encrypt a credentials dict for storage in ``credentials_encrypted``.

    Example:
        >>> encrypt_credentials({"aws_access_key_id": "AKIA...", "aws_secret_access_key": "..."})
        'gAAAAA...'
    """
    token = _get_fernet().encrypt(json.dumps(credentials).encode())
    return token.decode()


def decrypt_credentials(encrypted: str) -> Dict[str, Any]:
    """Decrypt credentials stored by :func:`encrypt_credentials`.

    Raises:
        ValueError: If the token was produced with another key or is corrupted
    """
    try:
        return json.loads(_get_fernet().decrypt(encrypted.encode()).decode())
    except InvalidToken as e:
        raise ValueError(f"Failed to decrypt credentials: {e}")
