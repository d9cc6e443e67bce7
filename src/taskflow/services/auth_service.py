"""Auth service — registration, login and profile updates.

Passwords are hashed with bcrypt before they reach the store; every
user handed back to callers is the UserRead projection, never the row
with its hash.
"""

import uuid

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.jwt import create_access_token
from taskflow.auth.password import hash_password, verify_password
from taskflow.errors import AuthenticationError, ConflictError, UserNotFound
from taskflow.repositories.users import UserRepository
from taskflow.schemas.auth import UserRead

logger = structlog.get_logger()

DUPLICATE_EMAIL = "User with this email already exists"
BAD_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Business logic for accounts and credentials."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)

    async def register(self, email: str, name: str, password: str) -> tuple[UserRead, str]:
        """Create an account and return it with a fresh token."""
        if await self.users.get_by_email(email):
            raise ConflictError(DUPLICATE_EMAIL)

        user = await self.users.create(
            email=email,
            name=name,
            password_hash=hash_password(password),
        )
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            await self.db.rollback()
            raise ConflictError(DUPLICATE_EMAIL)

        logger.info("auth.registered", user_id=str(user.id))
        return UserRead.model_validate(user), create_access_token(str(user.id))

    async def login(self, email: str, password: str) -> tuple[UserRead, str]:
        """Check credentials. Unknown email and wrong password look the same."""
        user = await self.users.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed")
            raise AuthenticationError(BAD_CREDENTIALS)

        logger.info("auth.login", user_id=str(user.id))
        return UserRead.model_validate(user), create_access_token(str(user.id))

    async def get_current_user(self, user_id: uuid.UUID) -> UserRead:
        user = await self.users.get(user_id)
        if not user:
            raise UserNotFound()
        return UserRead.model_validate(user)

    async def update_profile(self, user_id: uuid.UUID, name: str) -> UserRead:
        user = await self.users.get(user_id)
        if not user:
            raise UserNotFound()
        await self.users.update_profile(user, name=name)
        await self.db.commit()
        return UserRead.model_validate(user)
