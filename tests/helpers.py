"""Small test helpers shared across modules."""

import asyncio

from taskflow.auth.jwt import create_access_token
from taskflow.db.models import User


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


class FakeTransport:
    """Stands in for a WebSocket: records every message sent to it.

    fail=True raises on every send; stall=True never finishes a send,
    like a client that has stopped reading its socket.
    """

    def __init__(self, fail: bool = False, stall: bool = False):
        self.sent: list[dict] = []
        self.fail = fail
        self.stall = stall

    async def send_json(self, data) -> None:
        if self.fail:
            raise ConnectionResetError("socket closed")
        if self.stall:
            await asyncio.Event().wait()
        self.sent.append(data)

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]

    def of_type(self, event_type: str) -> list[dict]:
        return [m for m in self.sent if m["type"] == event_type]
