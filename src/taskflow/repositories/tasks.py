"""Task store — filter, sort and paginate over the tasks table.

Every task this module hands out has creator and assigned_to loaded
(selectinload), so callers can serialize it outside the session.

Priority and status sort by rank through a CASE expression rather than
by their stored string, which keeps LOW < MEDIUM < HIGH < URGENT on any
backend.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskflow.db.models import PRIORITY_RANK, STATUS_RANK, Priority, Status, Task

SORT_FIELDS = ("dueDate", "createdAt", "priority", "status")
SORT_ORDERS = ("asc", "desc")
MAX_PAGE_SIZE = 100


@dataclass
class TaskQuery:
    """Filter (AND-combined), sort key and page window for find_many."""

    status: Optional[Status] = None
    priority: Optional[Priority] = None
    assigned_to_id: Optional[uuid.UUID] = None
    creator_id: Optional[uuid.UUID] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(f"sort_by must be one of {SORT_FIELDS}")
        if self.sort_order not in SORT_ORDERS:
            raise ValueError(f"sort_order must be one of {SORT_ORDERS}")
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


@dataclass
class Page:
    items: list[Task] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


def _sort_column(sort_by: str):
    if sort_by == "priority":
        return case(*[(Task.priority == p, rank) for p, rank in PRIORITY_RANK.items()])
    if sort_by == "status":
        return case(*[(Task.status == s, rank) for s, rank in STATUS_RANK.items()])
    if sort_by == "dueDate":
        return Task.due_date
    return Task.created_at


class TaskRepository:
    """Data access for tasks. Callers own the transaction (commit)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _select(self) -> Select:
        return select(Task).options(
            selectinload(Task.creator),
            selectinload(Task.assigned_to),
        )

    async def create(self, creator_id: uuid.UUID, **fields: Any) -> Task:
        task = Task(creator_id=creator_id, **fields)
        self.db.add(task)
        await self.db.flush()
        return task

    async def get(self, task_id: uuid.UUID) -> Optional[Task]:
        # populate_existing so a task touched earlier in this session comes
        # back with fresh relationships (e.g. after reassignment).
        result = await self.db.execute(
            self._select()
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def find_many(self, query: TaskQuery) -> Page:
        """One page of tasks plus the total count for the same filter."""
        conditions = []
        if query.status:
            conditions.append(Task.status == query.status)
        if query.priority:
            conditions.append(Task.priority == query.priority)
        if query.assigned_to_id:
            conditions.append(Task.assigned_to_id == query.assigned_to_id)
        if query.creator_id:
            conditions.append(Task.creator_id == query.creator_id)

        column = _sort_column(query.sort_by)
        ordering = column.asc() if query.sort_order == "asc" else column.desc()
        if query.sort_by == "dueDate":
            ordering = ordering.nulls_last()

        rows = await self.db.execute(
            self._select()
            .where(*conditions)
            .order_by(ordering, Task.created_at.desc(), Task.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        total = await self.db.scalar(
            select(func.count()).select_from(Task).where(*conditions)
        )
        return Page(
            items=list(rows.scalars().all()),
            total=total or 0,
            page=query.page,
            limit=query.limit,
        )

    async def update(self, task: Task, changes: dict[str, Any]) -> Task:
        for name, value in changes.items():
            setattr(task, name, value)
        await self.db.flush()
        return task

    async def delete(self, task: Task) -> None:
        await self.db.delete(task)
        await self.db.flush()

    async def find_overdue(self, user_id: uuid.UUID, now: datetime) -> list[Task]:
        """Assigned to user_id, due before now, not completed. Uncapped."""
        result = await self.db.execute(
            self._select()
            .where(
                Task.assigned_to_id == user_id,
                Task.due_date.is_not(None),
                Task.due_date < now,
                Task.status != Status.COMPLETED,
            )
            .order_by(Task.due_date.asc())
        )
        return list(result.scalars().all())
