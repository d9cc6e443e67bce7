"""Credential verifier — token in, user identity out.

Shared by the HTTP auth dependency and the WebSocket handshake. A token
is only as good as the user it names: a valid signature for a user that
no longer exists is still rejected.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.jwt import TokenError, verify_token
from taskflow.errors import InvalidCredential
from taskflow.repositories.users import UserRepository
from taskflow.schemas.auth import UserRead


class CredentialVerifier:
    """Verify a bearer token and resolve it to a UserRead. Read-only."""

    def __init__(self, db: AsyncSession):
        self.users = UserRepository(db)

    async def verify(self, token: str) -> UserRead:
        try:
            payload = verify_token(token)
        except TokenError as e:
            raise InvalidCredential(str(e))

        try:
            user_id = uuid.UUID(str(payload["sub"]))
        except (KeyError, ValueError):
            raise InvalidCredential("Invalid token: malformed subject")

        user = await self.users.get(user_id)
        if user is None:
            raise InvalidCredential("Invalid token: user not found")
        return UserRead.model_validate(user)
