"""JWT token creation and verification.

The access token carries the user id and role, so authorization never
needs a database round trip. Tokens expire after
settings.access_token_expire_minutes.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from taskdesk.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: uuid.UUID | str,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token for a user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "id": str(user_id),
        "role": role,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != "access" or "id" not in payload or "role" not in payload:
        raise TokenError("Invalid token: missing identity claims")
    return payload
