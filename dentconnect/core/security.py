# dentconnect/core/security.py
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from dentconnect.core.config import settings

# =========
# Passwords
# =========

_pwd_ctx = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    default="bcrypt_sha256",
    deprecated="auto",
)

def hash_password(plain_password: str) -> str:
    """
    Hash a plain-text password using bcrypt.
    """
    if not isinstance(plain_password, str) or plain_password == "":
        raise ValueError("Password must be a non-empty string")
    return _pwd_ctx.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """
    Verify a plain-text password against a bcrypt hash.
    """
    if not password_hash or not plain_password:
        return False
    try:
        return _pwd_ctx.verify(plain_password, password_hash)
    except ValueError:
        # Unknown or malformed hash (e.g. guest accounts)
        return False


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows; used for guest accounts."""
    return hash_password(secrets.token_urlsafe(32))


# =====
# JWTs
# =====

ALGORITHM = "HS256"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_session_id() -> str:
    return uuid.uuid4().hex


def session_expiry(expires_minutes: Optional[int] = None) -> datetime:
    return utcnow() + timedelta(minutes=expires_minutes or settings.ACCESS_EXPIRES_MIN)


def create_access_token(
    *,
    subject: str,                # user id (UUID as str)
    session_id: str,             # sessions.id, carried as jti
    expires_at: datetime,
    email: Optional[str] = None,
    user_type: Optional[str] = None,  # "patient" | "dentist"
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a Bearer access token bound to a server-side session row.
    """
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "type": "access",
        "iat": int(utcnow().timestamp()),
        "exp": int(expires_at.timestamp()),
        "jti": session_id,
    }
    if email:
        to_encode["email"] = email
    if user_type:
        to_encode["user_type"] = user_type
    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)


class InvalidTokenError(Exception):
    """Raised when a token is missing/invalid/expired or claims are malformed."""


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises InvalidTokenError on failure.
    """
    if not token:
        raise InvalidTokenError("missing_token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        # JWTError covers expired signature, invalid signature, bad format, etc.
        raise InvalidTokenError("invalid_token") from exc

    if "sub" not in payload or "jti" not in payload or payload.get("type") != "access":
        raise InvalidTokenError("invalid_claims")

    return payload
