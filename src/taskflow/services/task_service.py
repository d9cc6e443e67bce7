"""Task service — business rules around the task store.

Every mutation follows the same shape:
1. Load and validate (task exists, assignee exists, caller owns it)
2. Apply the change through the repository
3. Commit
4. Publish a broadcast event (best effort: a publish error is logged, the
   committed change still succeeds)

The publish capability is injected at construction, so the service has
no idea whether events go to WebSockets, a test recorder, or nowhere.

Rules enforced here:
- An assignee must resolve to a user at the moment it is set
- Only the creator may delete a task
- Updates are open to any authenticated user (no ownership check)
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.models import Task, User
from taskflow.errors import AssigneeNotFound, NotOwner, TaskNotFound
from taskflow.events.types import (
    BroadcastEvent,
    Publisher,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from taskflow.repositories.tasks import Page, TaskQuery, TaskRepository
from taskflow.repositories.users import UserRepository
from taskflow.schemas.task import TaskCreate, TaskRead

logger = structlog.get_logger()

DASHBOARD_LIMIT = 50


@dataclass
class DashboardData:
    assigned_tasks: list[Task]
    created_tasks: list[Task]
    overdue_tasks: list[Task]


class TaskService:
    """Business logic for task CRUD, assignment and the dashboard."""

    def __init__(self, db: AsyncSession, publish: Publisher):
        self.db = db
        self.tasks = TaskRepository(db)
        self.users = UserRepository(db)
        self.publish = publish

    async def _require_assignee(self, assignee_id: uuid.UUID) -> User:
        assignee = await self.users.get(assignee_id)
        if not assignee:
            raise AssigneeNotFound()
        return assignee

    async def _broadcast(self, event: BroadcastEvent) -> None:
        # Runs after commit; the caller must still see success.
        try:
            await self.publish(event)
        except Exception:
            logger.exception("task.publish_failed", event_type=type(event).__name__)

    # ─── Create ──────────────────────────────────────────

    async def create_task(self, data: TaskCreate, creator_id: uuid.UUID) -> Task:
        """Create a task owned by creator_id.

        The assignee is checked before anything is written, so a bad
        assignedToId leaves no row behind.
        """
        if data.assigned_to_id:
            await self._require_assignee(data.assigned_to_id)

        created = await self.tasks.create(
            creator_id=creator_id,
            title=data.title,
            description=data.description,
            due_date=data.due_date,
            priority=data.priority,
            assigned_to_id=data.assigned_to_id,
        )
        await self.db.commit()

        task = await self.tasks.get(created.id)
        logger.info(
            "task.created",
            task_id=str(task.id),
            creator_id=str(creator_id),
            assigned_to_id=str(task.assigned_to_id) if task.assigned_to_id else None,
        )
        await self._broadcast(TaskCreated(task=TaskRead.model_validate(task)))
        return task

    # ─── Read ────────────────────────────────────────────

    async def get_task(self, task_id: uuid.UUID) -> Task:
        task = await self.tasks.get(task_id)
        if not task:
            raise TaskNotFound()
        return task

    async def list_tasks(self, query: TaskQuery) -> Page:
        return await self.tasks.find_many(query)

    async def list_users(self) -> list[User]:
        return await self.users.list_all()

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        task_id: uuid.UUID,
        changes: dict[str, Any],
        actor_id: uuid.UUID,
    ) -> Task:
        """Apply a partial update and broadcast it.

        Only keys present in `changes` are written; assigned_to_id=None
        unassigns. The previous assignee is captured before the write so
        the broadcaster can tell assignment from unassignment.
        """
        task = await self.get_task(task_id)

        new_assignee = changes.get("assigned_to_id")
        if new_assignee is not None:
            await self._require_assignee(new_assignee)

        previous_assignee_id = task.assigned_to_id
        await self.tasks.update(task, changes)
        await self.db.commit()

        task = await self.tasks.get(task_id)
        logger.info(
            "task.updated",
            task_id=str(task_id),
            actor_id=str(actor_id),
            fields=sorted(changes),
        )
        await self._broadcast(
            TaskUpdated(
                task=TaskRead.model_validate(task),
                previous_assignee_id=previous_assignee_id,
            )
        )
        return task

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, task_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        task = await self.get_task(task_id)
        if task.creator_id != actor_id:
            logger.info(
                "task.delete_denied",
                task_id=str(task_id),
                actor_id=str(actor_id),
            )
            raise NotOwner()

        await self.tasks.delete(task)
        await self.db.commit()

        logger.info("task.deleted", task_id=str(task_id), actor_id=str(actor_id))
        await self._broadcast(TaskDeleted(task_id=task_id))

    # ─── Dashboard ───────────────────────────────────────

    async def get_dashboard(self, user_id: uuid.UUID) -> DashboardData:
        """Three independent reads; no consistency promised across them."""
        assigned = await self.tasks.find_many(
            TaskQuery(
                assigned_to_id=user_id,
                sort_by="dueDate",
                sort_order="asc",
                limit=DASHBOARD_LIMIT,
            )
        )
        created = await self.tasks.find_many(
            TaskQuery(
                creator_id=user_id,
                sort_by="createdAt",
                sort_order="desc",
                limit=DASHBOARD_LIMIT,
            )
        )
        overdue = await self.tasks.find_overdue(user_id, now=datetime.now(timezone.utc))
        return DashboardData(
            assigned_tasks=assigned.items,
            created_tasks=created.items,
            overdue_tasks=overdue,
        )
