"""Password hashing and signed access tokens."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from .config import Settings

# Use PBKDF2-SHA256 instead of bcrypt to avoid bcrypt backend issues
password_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


class TokenData(BaseModel):
    """Information encoded into JWTs."""

    sub: str
    sid: str
    exp: int

    @property
    def user_id(self) -> int:
        return int(self.sub)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return password_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against the stored hash."""
    return password_context.verify(password, password_hash)


def token_payload(user_id: int, session_id: str) -> dict[str, Any]:
    """
    Generate the JWT payload for a user's session.

    encode_access_token() will add "exp" on top of this; issue time lives on
    the session record.
    """
    return {
        "sub": str(user_id),
        "sid": session_id,
    }


def encode_access_token(payload: Dict[str, Any], expires_at: datetime, settings: Settings) -> str:
    return jwt.encode(
        {**payload, "exp": _timestamp(expires_at)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str, settings: Settings) -> TokenData:
    """Decode a JWT access token and return its payload.

    Raises ``jwt.PyJWTError`` for a bad signature or an elapsed ``exp``.
    """

    payload: Dict[str, Any] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    return TokenData(**payload)


def _timestamp(moment: datetime) -> int:
    # Stored datetimes are naive UTC.
    return int((moment - datetime(1970, 1, 1)).total_seconds())
