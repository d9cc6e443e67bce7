"""Pydantic schemas for registration, login and profiles.

UserRead is the only outward projection of a user — it never carries
the password hash. It doubles as the authenticated identity attached to
requests and WebSocket connections.
"""

import uuid
from datetime import datetime, timezone

from pydantic import Field, field_validator

from taskflow.schemas.base import CamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(CamelModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    name: str = Field(..., min_length=2, max_length=50)
    password: str = Field(..., min_length=6, max_length=100)


class LoginRequest(CamelModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)


class UserRead(CamelModel):
    id: uuid.UUID
    email: str
    name: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class AuthResponse(CamelModel):
    """Register/login response. The token is also set as a cookie."""
    message: str
    user: UserRead
    token: str


class UserEnvelope(CamelModel):
    user: UserRead


class UserUpdated(UserEnvelope):
    message: str


class UserList(CamelModel):
    users: list[UserRead]
