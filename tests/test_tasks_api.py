"""Task API tests — CRUD, assignment rules, filter/sort/paginate, dashboard.

Learn: `client` acts as current_user (Ann). When a test needs a second
actor (Bob deleting Ann's task) it switches to unauthenticated_client
with explicit Bearer headers, so both go through the real auth pipeline.

Pattern: build data through the API when the response matters, and
through make_task when only the rows matter (sorting, overdue).
"""

import math
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from helpers import auth_headers

from taskflow.db.models import Priority, Status


# ═══════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_task_defaults(client, current_user):
    """POST /tasks creates a MEDIUM/TODO task owned by the caller."""
    r = await client.post("/api/tasks", json={"title": "Write docs"})
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Task created successfully"

    task = body["task"]
    assert task["title"] == "Write docs"
    assert task["priority"] == "MEDIUM"
    assert task["status"] == "TODO"
    assert task["description"] is None
    assert task["dueDate"] is None
    assert task["creatorId"] == str(current_user.id)
    assert task["creator"]["name"] == "Ann"
    assert "passwordHash" not in task["creator"]
    assert task["assignedToId"] is None
    assert task["assignedTo"] is None


@pytest.mark.asyncio
async def test_create_task_with_assignee(client, other_user, future):
    r = await client.post(
        "/api/tasks",
        json={
            "title": "Review PR",
            "description": "Look at the auth changes",
            "priority": "HIGH",
            "dueDate": future.isoformat(),
            "assignedToId": str(other_user.id),
        },
    )
    assert r.status_code == 201
    task = r.json()["task"]
    assert task["assignedToId"] == str(other_user.id)
    assert task["assignedTo"]["name"] == "Bob"
    assert task["priority"] == "HIGH"
    assert task["dueDate"].startswith(future.strftime("%Y-%m-%dT%H:%M"))


@pytest.mark.asyncio
async def test_create_task_unknown_assignee_writes_nothing(client):
    """A dangling assignedToId → 404 and no row."""
    r = await client.post(
        "/api/tasks",
        json={"title": "Orphan", "assignedToId": str(uuid.uuid4())},
    )
    assert r.status_code == 404
    assert r.json() == {"error": "Assigned user not found"}

    r = await client.get("/api/tasks")
    assert r.json()["total"] == 0


@pytest.mark.asyncio
async def test_create_task_blank_assignee_is_unassigned(client):
    r = await client.post("/api/tasks", json={"title": "Nobody's", "assignedToId": ""})
    assert r.status_code == 201
    assert r.json()["task"]["assignedToId"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, field",
    [
        ({}, "title"),
        ({"title": ""}, "title"),
        ({"title": "x" * 101}, "title"),
        ({"title": "ok", "priority": "CRITICAL"}, "priority"),
        ({"title": "ok", "dueDate": "next tuesday"}, "dueDate"),
        ({"title": "ok", "assignedToId": "not-a-uuid"}, "assignedToId"),
    ],
)
async def test_create_task_validation(client, payload, field):
    r = await client.post("/api/tasks", json=payload)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Validation failed"
    assert field in [d["field"] for d in body["details"]]


@pytest.mark.asyncio
async def test_create_task_requires_auth(unauthenticated_client):
    r = await unauthenticated_client.post("/api/tasks", json={"title": "Nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Access token required"}


# ═══════════════════════════════════════════════════════════
# Read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_task(client):
    created = (await client.post("/api/tasks", json={"title": "Find me"})).json()["task"]

    r = await client.get(f"/api/tasks/{created['id']}")
    assert r.status_code == 200
    assert set(r.json()) == {"task"}
    assert r.json()["task"]["id"] == created["id"]
    assert r.json()["task"]["title"] == "Find me"


@pytest.mark.asyncio
async def test_get_task_not_found(client):
    r = await client.get(f"/api/tasks/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json() == {"error": "Task not found"}


@pytest.mark.asyncio
async def test_get_task_bad_id(client):
    r = await client.get("/api/tasks/not-a-uuid")
    assert r.status_code == 400
    assert r.json()["details"][0]["field"] == "task_id"


@pytest.mark.asyncio
async def test_list_users(client, current_user, other_user):
    r = await client.get("/api/tasks/users")
    assert r.status_code == 200
    names = [u["name"] for u in r.json()["users"]]
    assert names == ["Ann", "Bob"]
    assert all("passwordHash" not in u for u in r.json()["users"])


# ═══════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_only_sent_fields(client, future):
    created = (
        await client.post(
            "/api/tasks",
            json={"title": "Draft", "description": "keep me", "dueDate": future.isoformat()},
        )
    ).json()["task"]

    r = await client.put(
        f"/api/tasks/{created['id']}",
        json={"status": "IN_PROGRESS"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Task updated successfully"
    task = body["task"]
    assert task["status"] == "IN_PROGRESS"
    assert task["title"] == "Draft"
    assert task["description"] == "keep me"
    assert task["dueDate"] == created["dueDate"]


@pytest.mark.asyncio
async def test_update_explicit_null_clears(client, other_user, future):
    created = (
        await client.post(
            "/api/tasks",
            json={
                "title": "Clear me",
                "description": "old",
                "dueDate": future.isoformat(),
                "assignedToId": str(other_user.id),
            },
        )
    ).json()["task"]

    r = await client.put(
        f"/api/tasks/{created['id']}",
        json={"description": None, "dueDate": None, "assignedToId": None},
    )
    assert r.status_code == 200
    task = r.json()["task"]
    assert task["description"] is None
    assert task["dueDate"] is None
    assert task["assignedToId"] is None
    assert task["assignedTo"] is None


@pytest.mark.asyncio
async def test_update_null_title_rejected(client):
    created = (await client.post("/api/tasks", json={"title": "Keep"})).json()["task"]
    r = await client.put(f"/api/tasks/{created['id']}", json={"title": None})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_update_unknown_assignee(client):
    created = (await client.post("/api/tasks", json={"title": "Assign"})).json()["task"]

    r = await client.put(
        f"/api/tasks/{created['id']}",
        json={"assignedToId": str(uuid.uuid4()), "title": "Changed"},
    )
    assert r.status_code == 404
    assert r.json() == {"error": "Assigned user not found"}

    # Nothing was applied, not even the title.
    r = await client.get(f"/api/tasks/{created['id']}")
    assert r.json()["task"]["title"] == "Assign"


@pytest.mark.asyncio
async def test_update_missing_task(client):
    r = await client.put(f"/api/tasks/{uuid.uuid4()}", json={"title": "Ghost"})
    assert r.status_code == 404
    assert r.json() == {"error": "Task not found"}


@pytest.mark.asyncio
async def test_any_user_can_update_any_task(unauthenticated_client, current_user, other_user):
    """Updates carry no ownership check — Bob may edit Ann's task."""
    created = (
        await unauthenticated_client.post(
            "/api/tasks", json={"title": "Ann's"}, headers=auth_headers(current_user)
        )
    ).json()["task"]

    r = await unauthenticated_client.put(
        f"/api/tasks/{created['id']}",
        json={"status": "COMPLETED"},
        headers=auth_headers(other_user),
    )
    assert r.status_code == 200
    assert r.json()["task"]["status"] == "COMPLETED"
    assert r.json()["task"]["creatorId"] == str(current_user.id)


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_creator_can_delete(client):
    created = (await client.post("/api/tasks", json={"title": "Bye"})).json()["task"]

    r = await client.delete(f"/api/tasks/{created['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "Task deleted successfully"}

    r = await client.get(f"/api/tasks/{created['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_non_creator_cannot_delete(unauthenticated_client, current_user, other_user):
    created = (
        await unauthenticated_client.post(
            "/api/tasks", json={"title": "Mine"}, headers=auth_headers(current_user)
        )
    ).json()["task"]

    r = await unauthenticated_client.delete(
        f"/api/tasks/{created['id']}", headers=auth_headers(other_user)
    )
    assert r.status_code == 403
    assert r.json() == {"error": "You can only delete tasks you created"}

    r = await unauthenticated_client.get(
        f"/api/tasks/{created['id']}", headers=auth_headers(current_user)
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_delete_missing_task(client):
    r = await client.delete(f"/api/tasks/{uuid.uuid4()}")
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# List: filter, sort, paginate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_pagination(client, current_user, make_task):
    for i in range(25):
        await make_task(current_user, title=f"Task {i:02d}")

    r = await client.get("/api/tasks", params={"page": 3, "limit": 10})
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 25
    assert body["page"] == 3
    assert body["limit"] == 10
    assert body["totalPages"] == math.ceil(25 / 10)
    assert len(body["tasks"]) == 5


@pytest.mark.asyncio
async def test_list_page_past_end_is_empty(client, current_user, make_task):
    await make_task(current_user)
    r = await client.get("/api/tasks", params={"page": 5})
    body = r.json()
    assert body["tasks"] == []
    assert body["total"] == 1
    assert body["totalPages"] == 1


@pytest.mark.asyncio
async def test_list_empty(client):
    body = (await client.get("/api/tasks")).json()
    assert body == {"tasks": [], "total": 0, "page": 1, "limit": 10, "totalPages": 0}


@pytest.mark.asyncio
async def test_list_default_sort_newest_first(client, current_user, make_task):
    for title in ("first", "second", "third"):
        await make_task(current_user, title=title)

    titles = [t["title"] for t in (await client.get("/api/tasks")).json()["tasks"]]
    assert titles == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_list_filters_are_and_combined(client, current_user, other_user, make_task):
    await make_task(current_user, title="a", status=Status.TODO, priority=Priority.HIGH)
    await make_task(current_user, title="b", status=Status.TODO, priority=Priority.LOW)
    await make_task(
        current_user, title="c", status=Status.TODO, priority=Priority.HIGH,
        assigned_to_id=other_user.id,
    )
    await make_task(other_user, title="d", status=Status.COMPLETED, priority=Priority.HIGH)

    r = await client.get("/api/tasks", params={"status": "TODO", "priority": "HIGH"})
    assert sorted(t["title"] for t in r.json()["tasks"]) == ["a", "c"]

    r = await client.get(
        "/api/tasks",
        params={"status": "TODO", "priority": "HIGH", "assignedToId": str(other_user.id)},
    )
    assert [t["title"] for t in r.json()["tasks"]] == ["c"]

    r = await client.get("/api/tasks", params={"creatorId": str(other_user.id)})
    assert [t["title"] for t in r.json()["tasks"]] == ["d"]


@pytest.mark.asyncio
async def test_sort_by_priority_uses_rank(client, current_user, make_task):
    for p in (Priority.MEDIUM, Priority.URGENT, Priority.LOW, Priority.HIGH):
        await make_task(current_user, title=p.value, priority=p)

    r = await client.get("/api/tasks", params={"sortBy": "priority", "sortOrder": "asc"})
    assert [t["priority"] for t in r.json()["tasks"]] == ["LOW", "MEDIUM", "HIGH", "URGENT"]

    r = await client.get("/api/tasks", params={"sortBy": "priority", "sortOrder": "desc"})
    assert [t["priority"] for t in r.json()["tasks"]] == ["URGENT", "HIGH", "MEDIUM", "LOW"]


@pytest.mark.asyncio
async def test_sort_by_status_uses_workflow_order(client, current_user, make_task):
    for s in (Status.COMPLETED, Status.TODO, Status.REVIEW, Status.IN_PROGRESS):
        await make_task(current_user, title=s.value, status=s)

    r = await client.get("/api/tasks", params={"sortBy": "status", "sortOrder": "asc"})
    assert [t["status"] for t in r.json()["tasks"]] == [
        "TODO", "IN_PROGRESS", "REVIEW", "COMPLETED",
    ]


@pytest.mark.asyncio
async def test_sort_by_due_date_puts_undated_last(client, current_user, make_task):
    base = datetime.now(timezone.utc)
    await make_task(current_user, title="none")
    await make_task(current_user, title="later", due_date=base + timedelta(days=3))
    await make_task(current_user, title="sooner", due_date=base + timedelta(days=1))

    r = await client.get("/api/tasks", params={"sortBy": "dueDate", "sortOrder": "asc"})
    assert [t["title"] for t in r.json()["tasks"]] == ["sooner", "later", "none"]

    r = await client.get("/api/tasks", params={"sortBy": "dueDate", "sortOrder": "desc"})
    assert [t["title"] for t in r.json()["tasks"]] == ["later", "sooner", "none"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"sortBy": "title"},
        {"sortOrder": "sideways"},
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"status": "DONE"},
    ],
)
async def test_list_rejects_bad_query(client, params):
    r = await client.get("/api/tasks", params=params)
    assert r.status_code == 400
    assert r.json()["error"] == "Validation failed"


# ═══════════════════════════════════════════════════════════
# Dashboard
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_dashboard(client, current_user, other_user, make_task, past, future):
    # Assigned to Ann, created by Bob
    await make_task(other_user, title="mine soon", assigned_to_id=current_user.id, due_date=future)
    await make_task(other_user, title="mine late", assigned_to_id=current_user.id, due_date=past)
    await make_task(
        other_user, title="mine done late", assigned_to_id=current_user.id,
        due_date=past - timedelta(days=1), status=Status.COMPLETED,
    )
    # Created by Ann
    await make_task(current_user, title="ann created", due_date=past)
    # Nothing to do with Ann
    await make_task(other_user, title="bob only", due_date=past)

    r = await client.get("/api/tasks/dashboard")
    assert r.status_code == 200
    body = r.json()

    # Due date ascending
    assert [t["title"] for t in body["assignedTasks"]] == [
        "mine done late", "mine late", "mine soon",
    ]
    assert [t["title"] for t in body["createdTasks"]] == ["ann created"]
    # Only tasks assigned to Ann, and never completed ones
    assert [t["title"] for t in body["overdueTasks"]] == ["mine late"]


@pytest.mark.asyncio
async def test_dashboard_empty(client):
    body = (await client.get("/api/tasks/dashboard")).json()
    assert body == {"assignedTasks": [], "createdTasks": [], "overdueTasks": []}


@pytest.mark.asyncio
async def test_unknown_route(client):
    r = await client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Route not found"}
