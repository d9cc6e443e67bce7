"""Taskflow CLI — run the server and poke at the API from a terminal.

Usage:
    taskflow serve --reload                          # Run the API with uvicorn
    taskflow register a@x.com "Ann" secret1          # Create an account, print token
    taskflow login a@x.com secret1                   # Print a token
    taskflow tasks --status TODO --sort-by dueDate   # List tasks
    taskflow create "Write docs" --priority HIGH     # Create a task
    taskflow dashboard                               # Assigned / created / overdue

Commands that need auth take --token or read TASKFLOW_TOKEN.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Any, Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3001"


def _api_url() -> str:
    return os.environ.get("TASKFLOW_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Taskflow API."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pretty_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("TASKFLOW_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set TASKFLOW_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


async def _request(
    method: str,
    path: str,
    token: Optional[str] = None,
    **kwargs: Any,
) -> Any:
    async with _client(token) as client:
        resp = await client.request(method, path, **kwargs)
    try:
        body = resp.json()
    except ValueError:
        body = {"error": resp.text}
    if resp.is_error:
        message = body.get("error", resp.reason_phrase) if isinstance(body, dict) else resp.text
        click.secho(f"Error ({resp.status_code}): {message}", fg="red", err=True)
        for detail in body.get("details", []) if isinstance(body, dict) else []:
            click.secho(f"  {detail['field']}: {detail['message']}", fg="red", err=True)
        sys.exit(1)
    return body


def _call(method: str, path: str, token: Optional[str] = None, **kwargs: Any) -> Any:
    return asyncio.run(_request(method, path, token, **kwargs))


def _task_line(task: dict) -> str:
    assignee = (task.get("assignedTo") or {}).get("name", "-")
    due = (task.get("dueDate") or "-")[:10]
    return (
        f"{task['id'][:8]}  {task['status']:<11}  {task['priority']:<6}  "
        f"due {due:<10}  @{assignee:<12}  {task['title']}"
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="taskflow")
def cli() -> None:
    """Taskflow — tasks with real-time notifications."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: TASKFLOW_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TASKFLOW_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Run the API server."""
    import uvicorn

    from taskflow.config import settings

    uvicorn.run(
        "taskflow.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command()
@click.argument("email")
@click.argument("name")
@click.argument("password")
def register(email: str, name: str, password: str) -> None:
    """Create an account and print its token."""
    body = _call(
        "POST",
        "/api/auth/register",
        json={"email": email, "name": name, "password": password},
    )
    click.secho(f"Registered {body['user']['email']}", fg="green", err=True)
    click.echo(body["token"])


@cli.command()
@click.argument("email")
@click.argument("password")
def login(email: str, password: str) -> None:
    """Log in and print a token (export it as TASKFLOW_TOKEN)."""
    body = _call(
        "POST",
        "/api/auth/login",
        json={"email": email, "password": password},
    )
    click.echo(body["token"])


@cli.command()
@click.option("--token", default=None, help="Access token")
@click.option("--status", type=click.Choice(["TODO", "IN_PROGRESS", "REVIEW", "COMPLETED"]))
@click.option("--priority", type=click.Choice(["LOW", "MEDIUM", "HIGH", "URGENT"]))
@click.option("--assigned-to", "assigned_to", default=None, help="Assignee user id")
@click.option("--sort-by", type=click.Choice(["dueDate", "createdAt", "priority", "status"]), default="createdAt")
@click.option("--order", type=click.Choice(["asc", "desc"]), default="desc")
@click.option("--page", default=1, type=int)
@click.option("--limit", default=10, type=int)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def tasks(
    token: Optional[str],
    status: Optional[str],
    priority: Optional[str],
    assigned_to: Optional[str],
    sort_by: str,
    order: str,
    page: int,
    limit: int,
    as_json: bool,
) -> None:
    """List tasks."""
    params = {"sortBy": sort_by, "sortOrder": order, "page": page, "limit": limit}
    if status:
        params["status"] = status
    if priority:
        params["priority"] = priority
    if assigned_to:
        params["assignedToId"] = assigned_to

    body = _call("GET", "/api/tasks", _require_token(token), params=params)
    if as_json:
        click.echo(_pretty_json(body))
        return

    for task in body["tasks"]:
        click.echo(_task_line(task))
    click.secho(
        f"page {body['page']}/{body['totalPages']} — {body['total']} task(s)",
        dim=True,
    )


@cli.command()
@click.argument("title")
@click.option("--token", default=None, help="Access token")
@click.option("--description", "-d", default=None)
@click.option("--priority", type=click.Choice(["LOW", "MEDIUM", "HIGH", "URGENT"]), default="MEDIUM")
@click.option("--due", default=None, help="Due date (ISO 8601)")
@click.option("--assign", default=None, help="Assignee user id")
def create(
    title: str,
    token: Optional[str],
    description: Optional[str],
    priority: str,
    due: Optional[str],
    assign: Optional[str],
) -> None:
    """Create a task."""
    payload: dict[str, Any] = {"title": title, "priority": priority}
    if description:
        payload["description"] = description
    if due:
        payload["dueDate"] = due
    if assign:
        payload["assignedToId"] = assign

    body = _call("POST", "/api/tasks", _require_token(token), json=payload)
    task = body["task"]
    click.secho(f"Created {task['id']}", fg="green")
    click.echo(_task_line(task))


@cli.command()
@click.option("--token", default=None, help="Access token")
def dashboard(token: Optional[str]) -> None:
    """Show tasks assigned to you, created by you, and overdue."""
    body = _call("GET", "/api/tasks/dashboard", _require_token(token))
    sections = (
        ("Assigned to you", body["assignedTasks"]),
        ("Created by you", body["createdTasks"]),
        ("Overdue", body["overdueTasks"]),
    )
    for heading, items in sections:
        click.secho(f"{heading} ({len(items)})", bold=True)
        for task in items:
            click.echo(f"  {_task_line(task)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
