"""FastAPI auth dependencies.

These are used as Depends() in route handlers to turn the Authorization
header into a Caller. The Caller is then passed explicitly into every
service and policy call; nothing downstream reads the request.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Header

from taskdesk.auth.jwt import TokenError, verify_token
from taskdesk.errors import Unauthenticated


@dataclass(frozen=True)
class Caller:
    """The authenticated identity making the request."""

    id: uuid.UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[Caller]:
    """Resolve the bearer token if one was sent, else None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Unauthorized", "Expected a Bearer token")
    return _authenticate_jwt(token.strip())


async def get_current_user(
    caller: Optional[Caller] = Depends(get_current_user_optional),
) -> Caller:
    """Resolve the caller (required — 401 if no auth).

    The caller is bound into structlog's contextvars, so every log line
    written while handling the request carries user_id and role.
    """
    if caller is None:
        raise Unauthenticated("Unauthorized", "Authentication required")
    structlog.contextvars.bind_contextvars(user_id=str(caller.id), role=caller.role)
    return caller


def _authenticate_jwt(token: str) -> Caller:
    try:
        payload = verify_token(token)
        return Caller(id=uuid.UUID(payload["id"]), role=payload["role"])
    except TokenError as e:
        raise Unauthenticated("Unauthorized", str(e))
    except ValueError:
        raise Unauthenticated("Unauthorized", "Invalid token: malformed user id")
