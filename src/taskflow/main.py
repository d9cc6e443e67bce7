"""FastAPI application factory.

create_app() wires everything together: the middleware stack, the error
envelope handlers, the /api routers and the /ws endpoint. Each app owns
one Broadcaster on app.state; routes reach it through get_broadcaster
and hand its publish method to TaskService.

The lifespan connects Redis (optional, rate limiting only) and disposes
of the database engine on shutdown.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskflow import __version__
from taskflow.api import api_router
from taskflow.config import settings
from taskflow.db import redis as redis_handle
from taskflow.db.engine import engine
from taskflow.errors import register_exception_handlers
from taskflow.middleware.rate_limit import RateLimitMiddleware
from taskflow.middleware.request_id import RequestIdMiddleware
from taskflow.middleware.security import SecurityHeadersMiddleware
from taskflow.realtime.broadcaster import Broadcaster
from taskflow.realtime.websocket import router as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "taskflow.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )
    try:
        await redis_handle.init_redis()
        logger.info("taskflow.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("taskflow.redis_unavailable", error=str(e))

    yield

    logger.info("taskflow.shutdown", connections=app.state.broadcaster.connection_count())
    await redis_handle.close_redis()
    await engine.dispose()


def _install_middleware(app: FastAPI) -> None:
    # Last added runs first: CORS → RateLimit → SecurityHeaders → RequestId → route
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Taskflow",
        description="Task management with real-time assignment notifications",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.broadcaster = Broadcaster(send_timeout=settings.realtime_send_timeout)

    _install_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router)
    app.include_router(ws_router)
    return app


# uvicorn taskflow.main:app
app = create_app()
