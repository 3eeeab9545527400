import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_fernet_key: Optional[str] = None


def _init_fernet() -> Optional[Fernet]:
    global _fernet, _fernet_key
    key = getattr(settings, "ENCRYPTION_KEY", "") or ""
    if key == _fernet_key:
        return _fernet
    _fernet_key = key
    if not key:
        _fernet = None
        return None
    try:
        _fernet = Fernet(key.encode())
    except ValueError as e:
        logger.error(f"ENCRYPTION_KEY is not a valid Fernet key, storing values in plaintext: {e}")
        _fernet = None
    return _fernet


def encrypt_value(plaintext: str) -> str:
    f = _init_fernet()
    if not f or not plaintext:
        return plaintext
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(token: str) -> str:
    f = _init_fernet()
    if not f or not token:
        return token
    try:
        return f.decrypt(token.encode()).decode()
    except InvalidToken:
        return token  # written before the key was configured


def is_encrypted(value: str) -> bool:
    f = _init_fernet()
    if not f or not value:
        return False
    # Fernet tokens are URL-safe base64 strings that start with 'gAAAA'
    if not value.startswith("gAAAA"):
        return False
    try:
        f.decrypt(value.encode())
        return True
    except InvalidToken:
        return False
