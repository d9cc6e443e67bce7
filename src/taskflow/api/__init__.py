"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Auth is applied at the include_router level for the task routes. The
auth router mixes open routes (register/login/logout) with protected
ones, so it declares get_current_user per route instead.
"""

from fastapi import APIRouter, Depends

from taskflow.api.auth import router as auth_router
from taskflow.api.health import router as health_router
from taskflow.api.tasks import router as tasks_router
from taskflow.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
