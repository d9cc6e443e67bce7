"""WebSocket endpoint — real-time task events for frontend clients.

Clients connect to /ws?token=JWT. The handler:
1. Verifies the token before accepting (close code 4001 on failure)
2. Joins the connection to `user:<id>` and `tasks`
3. Sends a connection.ready message with the resolved user
4. Answers pings until the client goes away, then leaves every channel

Events themselves are pushed by the Broadcaster, not by this loop.
"""

import json

import structlog
from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.verifier import CredentialVerifier
from taskflow.db.engine import get_db
from taskflow.errors import AuthenticationError
from taskflow.events.types import CONNECTION_READY, PING, PONG
from taskflow.realtime.broadcaster import Broadcaster, Connection

logger = structlog.get_logger()
router = APIRouter()

AUTH_FAILED_CLOSE_CODE = 4001


def get_broadcaster(request: Request) -> Broadcaster:
    """FastAPI dependency — the app's broadcaster (created in create_app)."""
    return request.app.state.broadcaster


@router.websocket("/ws")
async def task_events(websocket: WebSocket, db: AsyncSession = Depends(get_db)):
    broadcaster: Broadcaster = websocket.app.state.broadcaster
    connection = Connection(websocket)
    token = websocket.query_params.get("token")

    # ── Authentication ──────────────────────────────────────
    try:
        await broadcaster.authenticate(
            connection, token, CredentialVerifier(db).verify
        )
    except AuthenticationError as e:
        logger.info("realtime.rejected", reason=e.message)
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason=e.message)
        return
    finally:
        # The session is only needed for the handshake lookup; don't hold
        # a pooled connection for the lifetime of the socket.
        await db.close()

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()
    broadcaster.join(connection)

    try:
        await websocket.send_json({
            "type": CONNECTION_READY,
            "user": connection.user.model_dump(mode="json", by_alias=True),
        })
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == PING:
                await websocket.send_json({"type": PONG})
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(connection)
