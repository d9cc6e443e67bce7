"""Error taxonomy and the HTTP boundary handlers.

Services raise typed failures (AppError subclasses). One set of exception
handlers, registered in main.py, turns them into the JSON envelope:

    {"error": "Task not found"}
    {"error": "Validation failed", "details": [{"field": ..., "message": ...}]}

The HTTP status carries the error kind. Unexpected exceptions become a
bare 500 — internal details never leave the process.
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for failures that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed input, with optional field-level detail."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[list[dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.details = details or []


class AuthenticationError(AppError):
    """Missing, invalid or expired credential."""

    status_code = 401


class InvalidCredential(AuthenticationError):
    """Token failed verification or no longer resolves to a user."""


class AuthorizationError(AppError):
    """Authenticated, but not allowed to do this."""

    status_code = 403


class NotOwner(AuthorizationError):
    def __init__(self, message: str = "You can only delete tasks you created"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404


class TaskNotFound(NotFoundError):
    def __init__(self, message: str = "Task not found"):
        super().__init__(message)


class AssigneeNotFound(NotFoundError):
    def __init__(self, message: str = "Assigned user not found"):
        super().__init__(message)


class UserNotFound(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409


# ─── Boundary handlers ───────────────────────────────────


def _error_body(message: str, details: Optional[list[dict[str, str]]] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message}
    if details:
        body["details"] = details
    return body


def _field_path(loc: tuple) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts in front.
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return ".".join(parts)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    details = exc.details if isinstance(exc, ValidationError) else None
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, details),
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {"field": _field_path(err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("Validation failed", details),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request.unhandled_error",
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
