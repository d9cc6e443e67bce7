"""In-process broadcaster — channel membership and task event fan-out.

Each WebSocket connection moves through:

    CONNECTING → AUTHENTICATED → JOINED → DISCONNECTED

A connection that fails authentication never reaches JOINED, so it can
never receive an event. Once authenticated it joins exactly two
channels: its private `user:<id>` channel and the shared `tasks` channel.

Delivery is fire-and-forget: no acks, no queue, no replay. If a user has
no live connection the event is simply dropped — clients can always
re-fetch over HTTP. A client that doesn't take a message within
send_timeout seconds is dropped like one whose socket errored.
Membership lives in this process only and starts empty on restart.
"""

import asyncio
import enum
import uuid
from collections import defaultdict
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog

from taskflow.errors import AuthenticationError
from taskflow.events.types import (
    TASK_ASSIGNED,
    TASK_CREATED,
    TASK_DELETED,
    TASK_UNASSIGNED,
    TASK_UPDATED,
    BroadcastEvent,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from taskflow.schemas.auth import UserRead
from taskflow.schemas.task import TaskRead

logger = structlog.get_logger()

TASKS_CHANNEL = "tasks"

# Seconds one client gets to accept a message before it is dropped.
SEND_TIMEOUT = 5.0


def user_channel(user_id: uuid.UUID | str) -> str:
    return f"user:{user_id}"


class Transport(Protocol):
    """Anything that can push a JSON message to one client."""

    async def send_json(self, data: Any) -> None: ...


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class Connection:
    """One client connection and the identity resolved at handshake."""

    def __init__(self, transport: Transport):
        self.id = uuid.uuid4().hex
        self.transport = transport
        self.state = ConnectionState.CONNECTING
        self.user: Optional[UserRead] = None
        self.channels: set[str] = set()

    def __repr__(self) -> str:
        user_id = self.user.id if self.user else None
        return f"<Connection {self.id} user={user_id} state={self.state.value}>"


class Broadcaster:
    """Channel membership table plus the task event publish contract."""

    def __init__(self, send_timeout: float = SEND_TIMEOUT):
        self._channels: dict[str, set[Connection]] = defaultdict(set)
        self.send_timeout = send_timeout

    # ─── Connection lifecycle ────────────────────────────

    async def authenticate(
        self,
        connection: Connection,
        token: Optional[str],
        verify: Callable[[str], Awaitable[UserRead]],
    ) -> UserRead:
        """Run the credential check for a connecting client.

        Raises AuthenticationError (connection stays out of every channel).
        """
        if connection.state is not ConnectionState.CONNECTING:
            raise RuntimeError(f"Cannot authenticate {connection!r}")
        if not token:
            raise AuthenticationError("Authentication required")

        user = await verify(token)
        connection.user = user
        connection.state = ConnectionState.AUTHENTICATED
        return user

    def join(self, connection: Connection) -> None:
        """Subscribe an authenticated connection to its two channels."""
        if connection.state is not ConnectionState.AUTHENTICATED or connection.user is None:
            raise RuntimeError(f"Cannot join unauthenticated {connection!r}")

        for channel in (user_channel(connection.user.id), TASKS_CHANNEL):
            self._channels[channel].add(connection)
            connection.channels.add(channel)
        connection.state = ConnectionState.JOINED
        logger.info(
            "realtime.joined",
            connection_id=connection.id,
            user_id=str(connection.user.id),
        )

    def disconnect(self, connection: Connection) -> None:
        """Drop a connection from every channel. Safe to call twice."""
        for channel in connection.channels:
            members = self._channels.get(channel)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del self._channels[channel]
        connection.channels.clear()

        if connection.state is not ConnectionState.DISCONNECTED:
            connection.state = ConnectionState.DISCONNECTED
            logger.info(
                "realtime.disconnected",
                connection_id=connection.id,
                user_id=str(connection.user.id) if connection.user else None,
            )

    def members(self, channel: str) -> set[Connection]:
        return set(self._channels.get(channel, ()))

    def connection_count(self) -> int:
        # Every joined connection is in the tasks channel.
        return len(self._channels.get(TASKS_CHANNEL, ()))

    # ─── Publishing ──────────────────────────────────────

    async def publish(self, event: BroadcastEvent) -> None:
        """Publisher entry point handed to the task service."""
        if isinstance(event, TaskCreated):
            await self.publish_task_created(event.task)
        elif isinstance(event, TaskUpdated):
            await self.publish_task_updated(event.task, event.previous_assignee_id)
        elif isinstance(event, TaskDeleted):
            await self.publish_task_deleted(event.task_id)
        else:
            raise TypeError(f"Unknown broadcast event: {event!r}")

    async def publish_task_created(self, task: TaskRead) -> None:
        await self.emit(TASKS_CHANNEL, TASK_CREATED, {"task": _dump(task)})

    async def publish_task_updated(
        self,
        task: TaskRead,
        previous_assignee_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Broadcast the update, then notify whoever gained or lost it.

        Reassignment A → B notifies B only; clearing B → none notifies B.
        """
        payload = _dump(task)
        await self.emit(TASKS_CHANNEL, TASK_UPDATED, {"task": payload})

        if task.assigned_to_id and task.assigned_to_id != previous_assignee_id:
            await self.emit(
                user_channel(task.assigned_to_id),
                TASK_ASSIGNED,
                {
                    "task": payload,
                    "message": f"You have been assigned to task: {task.title}",
                },
            )
        elif previous_assignee_id and not task.assigned_to_id:
            await self.emit(
                user_channel(previous_assignee_id),
                TASK_UNASSIGNED,
                {
                    "task": payload,
                    "message": f"You have been unassigned from task: {task.title}",
                },
            )

    async def publish_task_deleted(self, task_id: uuid.UUID) -> None:
        await self.emit(TASKS_CHANNEL, TASK_DELETED, {"taskId": str(task_id)})

    async def emit(self, channel: str, event_type: str, data: dict[str, Any]) -> int:
        """Send one message to every member of a channel.

        Returns how many connections were sent to successfully. A send that
        fails or outlasts send_timeout drops that connection; the others
        still get the message.
        """
        targets = self.members(channel)
        if not targets:
            return 0

        message = {"type": event_type, **data}
        results = await asyncio.gather(
            *(self._send(conn, message) for conn in targets)
        )
        return sum(results)

    async def _send(self, connection: Connection, message: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(
                connection.transport.send_json(message), self.send_timeout
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "realtime.send_timeout",
                connection_id=connection.id,
                event_type=message.get("type"),
                timeout=self.send_timeout,
            )
            self.disconnect(connection)
            return False
        except Exception as e:
            logger.warning(
                "realtime.send_failed",
                connection_id=connection.id,
                event_type=message.get("type"),
                error=str(e),
            )
            self.disconnect(connection)
            return False


def _dump(task: TaskRead) -> dict[str, Any]:
    return task.model_dump(mode="json", by_alias=True)
