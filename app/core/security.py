"""
JWT access-token verification.

Tokens are issued by the platform's auth service; this service only checks
the signature, expiry and token type, and reads the subject (user id).
"""

from __future__ import annotations

from jose import JWTError, jwt

from app.core.config import settings

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None
