"""Task API routes.

These routes are the HTTP face of TaskService. The service owns the
rules (assignee must exist, only the creator deletes); routes translate
HTTP to service calls and service results to response schemas. Errors
raised by the service become JSON envelopes in errors.py.

Key patterns:
- PUT applies only the fields present in the body
- Query params (camelCase) for filter, sort and pagination
- /dashboard and /users are declared before /{task_id}
"""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.dependencies import get_current_user
from taskflow.db.engine import get_db
from taskflow.db.models import Priority, Status
from taskflow.realtime.broadcaster import Broadcaster
from taskflow.realtime.websocket import get_broadcaster
from taskflow.repositories.tasks import MAX_PAGE_SIZE, TaskQuery
from taskflow.schemas.auth import UserList, UserRead
from taskflow.schemas.base import MessageResponse
from taskflow.schemas.task import (
    Dashboard,
    TaskChanged,
    TaskCreate,
    TaskEnvelope,
    TaskPage,
    TaskRead,
    TaskUpdate,
)
from taskflow.services.task_service import TaskService

router = APIRouter(prefix="/tasks")


def _task_svc(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> TaskService:
    return TaskService(db, publish=broadcaster.publish)


def _read(tasks) -> list[TaskRead]:
    return [TaskRead.model_validate(t) for t in tasks]


@router.post("", response_model=TaskChanged, status_code=201)
async def create_task(
    body: TaskCreate,
    current: UserRead = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    task = await svc.create_task(body, creator_id=current.id)
    return TaskChanged(message="Task created successfully", task=TaskRead.model_validate(task))


@router.get("", response_model=TaskPage)
async def list_tasks(
    status: Optional[Status] = Query(None),
    priority: Optional[Priority] = Query(None),
    assigned_to_id: Optional[uuid.UUID] = Query(None, alias="assignedToId"),
    creator_id: Optional[uuid.UUID] = Query(None, alias="creatorId"),
    sort_by: Literal["dueDate", "createdAt", "priority", "status"] = Query(
        "createdAt", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    svc: TaskService = Depends(_task_svc),
):
    """List tasks. Filters are AND-combined; totalPages = ceil(total / limit)."""
    result = await svc.list_tasks(
        TaskQuery(
            status=status,
            priority=priority,
            assigned_to_id=assigned_to_id,
            creator_id=creator_id,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    )
    return TaskPage(
        tasks=_read(result.items),
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/dashboard", response_model=Dashboard)
async def get_dashboard(
    current: UserRead = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Assigned, created and overdue tasks for the current user."""
    data = await svc.get_dashboard(current.id)
    return Dashboard(
        assigned_tasks=_read(data.assigned_tasks),
        created_tasks=_read(data.created_tasks),
        overdue_tasks=_read(data.overdue_tasks),
    )


@router.get("/users", response_model=UserList)
async def list_users(svc: TaskService = Depends(_task_svc)):
    """Every user — for the assignee picker."""
    users = await svc.list_users()
    return UserList(users=[UserRead.model_validate(u) for u in users])


@router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task(task_id: uuid.UUID, svc: TaskService = Depends(_task_svc)):
    task = await svc.get_task(task_id)
    return TaskEnvelope(task=TaskRead.model_validate(task))


@router.put("/{task_id}", response_model=TaskChanged)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    current: UserRead = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Partially update a task. Any authenticated user may update any task."""
    task = await svc.update_task(task_id, body.changes(), actor_id=current.id)
    return TaskChanged(message="Task updated successfully", task=TaskRead.model_validate(task))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: uuid.UUID,
    current: UserRead = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Delete a task. Only its creator may do this (403 otherwise)."""
    await svc.delete_task(task_id, actor_id=current.id)
    return MessageResponse(message="Task deleted successfully")
