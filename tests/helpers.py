import asyncio
import json
from typing import Any

from browser_mcp import NotConnectedError


class FakeTransport:
    """Stands in for the WebSocket gateway: serializes and records what the bridge sends."""

    def __init__(self) -> None:
        self.connected = True
        self.sent: list[dict[str, Any]] = []

    def send(self, message: dict[str, Any]) -> None:
        if not self.connected:
            raise NotConnectedError("Extension not connected")
        json.dumps(message)
        self.sent.append(message)

    async def start(self) -> int:
        return 8765

    async def stop(self) -> None:
        self.connected = False

    def last(self, type_: str) -> dict[str, Any]:
        return [m for m in self.sent if m["type"] == type_][-1]


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def started(coro) -> asyncio.Future:
    """Run ``coro`` up to its first suspension and return its task."""
    task = asyncio.ensure_future(coro)
    await asyncio.sleep(0)
    return task


CONNECTED = {
    "type": "connected",
    "sessionId": "s1",
    "browser": {"name": "Chrome", "version": "120.0"},
    "tabs": [{"id": 1, "title": "t", "url": "http://x", "tools": []}],
}

FAST_TIMEOUTS = dict(connect=0.05, open_tab=0.05, focus_tab=0.05, close_tab=0.05,
                     tool_call=0.05, tool_discovery=0.05)
