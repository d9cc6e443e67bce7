"""User store — reads and writes against the users table."""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.models import User


class UserRepository:
    """Data access for users. Callers own the transaction (commit)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def create(self, email: str, name: str, password_hash: str) -> User:
        user = User(email=email, name=name, password_hash=password_hash)
        self.db.add(user)
        await self.db.flush()
        return user

    async def list_all(self) -> list[User]:
        """Every user, by name — feeds the assignee picker."""
        result = await self.db.execute(select(User).order_by(User.name, User.email))
        return list(result.scalars().all())

    async def update_profile(self, user: User, name: str) -> User:
        user.name = name
        await self.db.flush()
        return user
