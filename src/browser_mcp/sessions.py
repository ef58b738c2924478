"""
Session table — one Session per logical client, each with its own pending operations.

Sessions share the browser state but never each other's pending work. Idle
sessions are swept after 30 minutes; deleting a session rejects everything it
still has pending with SessionClosedError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from browser_mcp.errors import BrowserMCPError, SessionClosedError
from browser_mcp.pending import PendingMap, PendingSlot

logger = logging.getLogger("browser_mcp.sessions")

SESSION_IDLE_TIMEOUT_S = 30 * 60.0
SWEEP_INTERVAL_S = 60.0


class Session:
    def __init__(self, session_id: str, now: float):
        self.id = session_id
        self.created_at = now
        self.last_activity_at = now
        self.call_counter = 0
        self.focused_tab_id: Optional[int] = None

        self.pending_calls: PendingMap[str] = PendingMap("tool_call")
        self.pending_open_tabs: PendingMap[str] = PendingMap("open_tab")
        self.pending_focus_tabs: PendingMap[int] = PendingMap("focus_tab")
        self.pending_close_tabs: PendingMap[int] = PendingMap("close_tab")
        self.pending_connect = PendingSlot("connect", on_settle=self._connect_settled)
        self.connect_in_progress = False

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, pending={self.pending_count})"

    def _connect_settled(self) -> None:
        self.connect_in_progress = False

    @property
    def pending_count(self) -> int:
        return (
            len(self.pending_calls) + len(self.pending_open_tabs) + len(self.pending_focus_tabs)
            + len(self.pending_close_tabs) + int(self.pending_connect.active)
        )

    def drain(self, make_error: Callable[[], BrowserMCPError]) -> int:
        """Reject every pending operation in every container."""
        rejected = 0
        for container in (self.pending_calls, self.pending_open_tabs,
                          self.pending_focus_tabs, self.pending_close_tabs):
            rejected += container.drain(make_error)
        rejected += self.pending_connect.drain(make_error)
        self.connect_in_progress = False
        return rejected


class SessionTable:
    def __init__(
        self,
        idle_timeout: float = SESSION_IDLE_TIMEOUT_S,
        sweep_interval: float = SWEEP_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sessions: dict[str, Session] = {}
        self._idle_timeout = idle_timeout
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._cleanup_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self, session_id: str) -> Session:
        """Create a session. An existing live session is returned as-is, pending work intact."""
        existing = self._sessions.get(session_id)
        if existing is not None:
            logger.warning("Session %s already exists; keeping it", session_id)
            existing.last_activity_at = self._clock()
            return existing
        session = Session(session_id, self._clock())
        self._sessions[session_id] = session
        logger.info("Session created: %s", session_id)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        """Look up a session and mark it active. Never creates."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_activity_at = self._clock()
        return session

    def get_or_create(self, session_id: str) -> Session:
        return self.get(session_id) or self.create(session_id)

    def delete(self, session_id: str, make_error: Callable[[], BrowserMCPError] = SessionClosedError) -> bool:
        session = self._sessions.get(session_id)
        if session is None:
            return False
        rejected = session.drain(make_error)
        del self._sessions[session_id]
        logger.info("Session deleted: %s (%d pending rejected)", session_id, rejected)
        return True

    def list_all(self) -> list[Session]:
        return list(self._sessions.values())

    def drain_all(self, make_error: Callable[[], BrowserMCPError]) -> int:
        """Reject pending work in every session without deleting any."""
        return sum(session.drain(make_error) for session in self.list_all())

    def sweep_idle(self, threshold: Optional[float] = None) -> int:
        """Delete sessions idle for longer than ``threshold`` seconds. Returns the count."""
        limit = self._idle_timeout if threshold is None else threshold
        now = self._clock()
        stale = [s.id for s in self.list_all() if now - s.last_activity_at > limit]
        for session_id in stale:
            logger.info("Cleaning up inactive session: %s", session_id)
            self.delete(session_id)
        return len(stale)

    def start_cleanup(self) -> None:
        """Run sweep_idle every sweep interval until stop_cleanup()."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            cleaned = self.sweep_idle()
            if cleaned:
                logger.info("Cleaned up %d inactive session(s)", cleaned)
