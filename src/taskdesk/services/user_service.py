"""User service — the identity directory.

Signup stores a bcrypt hash, never the password. Signin distinguishes an
unknown email (404) from a wrong password (401); the public API has always
behaved that way and clients rely on it to send people to signup.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth.jwt import create_access_token
from taskdesk.auth.password import hash_password, verify_password
from taskdesk.db.models import ROLES, User
from taskdesk.errors import Conflict, NotFound, Unauthenticated, ValidationError

logger = structlog.get_logger()


class UserService:
    """Signup, signin and user lookups."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        role: str = "user",
    ) -> User:
        if role not in ROLES:
            raise ValidationError(f"Unknown role: {role}")

        if await self.get_by_email(email):
            raise Conflict("Email already exists")

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Email already exists", "This email is already registered")

        await self.db.refresh(user)
        logger.info("user.signed_up", user_id=str(user.id), role=role)
        return user

    async def signin(self, email: str, password: str) -> str:
        """Check credentials and return a fresh access token."""
        user = await self.get_by_email(email)
        if not user:
            logger.info("auth.signin_unknown_email")
            raise NotFound("signup first then login")

        if not verify_password(password, user.password_hash):
            logger.info("auth.signin_failed", user_id=str(user.id))
            raise Unauthenticated("password is incorrect")

        logger.info("auth.signin", user_id=str(user.id))
        return create_access_token(user.id, user.role)

    async def set_role(self, user_id: uuid.UUID, role: str) -> User:
        """Change a user's role. Operator-only; there is no HTTP route."""
        if role not in ROLES:
            raise ValidationError(f"Unknown role: {role}")
        user = await self.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        user.role = role
        await self.db.commit()
        logger.info("user.role_changed", user_id=str(user_id), role=role)
        return user
