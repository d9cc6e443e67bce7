"""Pydantic schemas for tasks.

- TaskCreate: what you POST to create a task
- TaskUpdate: what you PUT to modify one (only fields you send are applied)
- TaskRead: what the API returns, creator and assignee expanded
- TaskPage / Dashboard: list and dashboard responses
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from taskflow.db.models import Priority, Status
from taskflow.schemas.auth import UserRead
from taskflow.schemas.base import CamelModel


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Priority = Priority.MEDIUM
    assigned_to_id: Optional[uuid.UUID] = None

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value):
        return _to_utc(value)

    @field_validator("assigned_to_id", mode="before")
    @classmethod
    def blank_assignee(cls, value):
        return _blank_to_none(value)


class TaskUpdate(CamelModel):
    """Partial update.

    Absent fields are left alone. An explicit null clears description,
    dueDate or assignedToId; title, priority and status can't be null.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    status: Optional[Status] = None
    assigned_to_id: Optional[uuid.UUID] = None

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value):
        return _to_utc(value)

    @field_validator("assigned_to_id", mode="before")
    @classmethod
    def blank_assignee(cls, value):
        return _blank_to_none(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for name in ("title", "priority", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent, keyed by column name."""
        return self.model_dump(exclude_unset=True)


class TaskRead(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    priority: Priority
    status: Status
    creator_id: uuid.UUID
    assigned_to_id: Optional[uuid.UUID]
    created_at: datetime
    updated_at: datetime
    creator: UserRead
    assigned_to: Optional[UserRead]

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def timestamps_utc(cls, value):
        return _to_utc(value)


class TaskEnvelope(CamelModel):
    task: TaskRead


class TaskChanged(TaskEnvelope):
    """Create/update response: the task plus a confirmation message."""
    message: str


class TaskPage(CamelModel):
    tasks: list[TaskRead]
    total: int
    page: int
    limit: int
    total_pages: int


class Dashboard(CamelModel):
    assigned_tasks: list[TaskRead]
    created_tasks: list[TaskRead]
    overdue_tasks: list[TaskRead]
