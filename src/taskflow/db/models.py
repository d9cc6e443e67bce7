"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative mapping in SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Alembic migrations are written against these models.

Column types are the portable ones (Uuid, Enum, DateTime) so the same
models run on PostgreSQL in production and SQLite in tests.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class Priority(str, enum.Enum):
    """Task priority. Declaration order is the rank: LOW < ... < URGENT."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Status(str, enum.Enum):
    """Task status. Any status may follow any other."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    COMPLETED = "COMPLETED"


PRIORITY_RANK: dict[Priority, int] = {p: i for i, p in enumerate(Priority)}
STATUS_RANK: dict[Status, int] = {s: i for i, s in enumerate(Status)}


class User(Base):
    """A registered user.

    password_hash stays inside the credential path — every outward
    projection (UserRead) leaves it out.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Task(Base):
    """A trackable unit of work.

    creator_id is set once at creation. assigned_to_id is checked against
    the users table only at the moment it is set.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_assigned_to_due", "assigned_to_id", "due_date"),
        Index("ix_tasks_creator_created", "creator_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority, name="task_priority"),
        nullable=False,
        default=Priority.MEDIUM,
    )
    status: Mapped[Status] = mapped_column(
        Enum(Status, name="task_status"),
        nullable=False,
        default=Status.TODO,
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships, loaded explicitly with selectinload (async sessions
    # can't lazy-load).
    creator: Mapped["User"] = relationship(foreign_keys=[creator_id], lazy="raise")
    assigned_to: Mapped[Optional["User"]] = relationship(
        foreign_keys=[assigned_to_id], lazy="raise"
    )
