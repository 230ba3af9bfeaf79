"""Password hashing, digests and session token helpers."""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from .config import get_settings
from .models import User
from .schemas import TokenData

# Use PBKDF2-SHA256 instead of bcrypt to avoid bcrypt backend issues
password_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

JWT_ALGORITHM = "HS256"

# Appended by the front end to the SHA-256 of every password it submits
CLIENT_DIGEST_SUFFIX = "@Aa"


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return password_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against the stored hash."""
    if not password_hash:
        return False
    try:
        return password_context.verify(password, password_hash)
    except ValueError:
        # Unrecognised or malformed stored hash
        return False


def hash_text(text: str) -> str:
    """Return the lowercase hex SHA-256 digest of `text` (64 characters)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def client_password_digest(password: str) -> str:
    """Derive a password the same way the front end does before submitting it.

    The fixed suffix is not a salt; it only exists for client compatibility.
    """
    return hash_text(password) + CLIENT_DIGEST_SUFFIX


def compute_expiry(minutes: int) -> datetime:
    """Return an absolute expiration timestamp for tokens."""

    return datetime.utcnow() + timedelta(minutes=minutes)


def token_payload(user: User) -> dict[str, Any]:
    """
    Generate the JWT payload for a given user.

    create_session_token() will add "exp" on top of this.
    """
    return {
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "stamp": user.security_stamp,
        "iat": int(datetime.now(timezone.utc).timestamp()),
    }


def create_session_token(user: User, expires_at: datetime) -> str:
    settings = get_settings()
    return jwt.encode(
        {**token_payload(user), "exp": int(expires_at.replace(tzinfo=timezone.utc).timestamp())},
        settings.secret_key,
        algorithm=JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> TokenData:
    """Decode a JWT access token and return its payload."""

    payload: Dict[str, Any] = jwt.decode(
        token,
        get_settings().secret_key,
        algorithms=[JWT_ALGORITHM],
    )
    return TokenData(**payload)
