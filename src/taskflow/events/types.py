"""Broadcast event types.

Event names are the `type` field of every real-time message. The three
dataclasses are what the task service hands to its publish capability;
the broadcaster turns them into wire messages.
"""

import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from taskflow.schemas.task import TaskRead

# ─── Task lifecycle (channel: tasks) ─────────────────────

TASK_CREATED = "task.created"
TASK_UPDATED = "task.updated"
TASK_DELETED = "task.deleted"

# ─── Personal notifications (channel: user:<id>) ─────────

TASK_ASSIGNED = "task.assigned"
TASK_UNASSIGNED = "task.unassigned"

# ─── Connection control ──────────────────────────────────

CONNECTION_READY = "connection.ready"
PING = "ping"
PONG = "pong"


@dataclass(frozen=True)
class TaskCreated:
    task: TaskRead


@dataclass(frozen=True)
class TaskUpdated:
    task: TaskRead
    previous_assignee_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class TaskDeleted:
    task_id: uuid.UUID


BroadcastEvent = Union[TaskCreated, TaskUpdated, TaskDeleted]

# What the task service receives instead of a global broadcaster handle.
Publisher = Callable[[BroadcastEvent], Awaitable[None]]
