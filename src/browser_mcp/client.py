"""
BrowserBridge — the per-session operations a front-end calls.

Each operation checks connectivity, builds its request, registers its pending
entry and sends the request without yielding, then awaits the one outcome:
the correlating reply, its timeout, an extension disconnect, or deletion of
the session. A request that fails validation raises before anything is
registered; a transport failure settles the entry it was sent for.
"""

import logging
import time
from typing import Any, Callable, Optional, Protocol

from pydantic import ValidationError

from browser_mcp.callid import KIND_CALL, KIND_DISCOVER, KIND_FOCUS, KIND_OPEN, generate_call_id
from browser_mcp.config import DEFAULT_SESSION_ID, BridgeConfig
from browser_mcp.errors import (
    AlreadyInProgressError,
    BrowserMCPError,
    InvalidArgumentsError,
    NotConnectedError,
    SendFailedError,
    SessionClosedError,
)
from browser_mcp.models.browser import BrowserInfo, ConnectResult, TabRecord, ToolDescriptor
from browser_mcp.models.messages import (
    CallToolRequest,
    CloseTabRequest,
    ConnectRequest,
    DiscoverToolsRequest,
    FocusTabRequest,
    OpenTabRequest,
    WireModel,
)
from browser_mcp.router import MessageRouter
from browser_mcp.sessions import SessionTable
from browser_mcp.state import BrowserStateStore
from browser_mcp.transport.discovery import DiscoveryFile
from browser_mcp.transport.gateway import ExtensionGateway

logger = logging.getLogger("browser_mcp.client")

NOT_CONNECTED_MESSAGE = "Not connected to browser"
EXTENSION_MISSING_MESSAGE = (
    "Extension not connected. Please ensure the browser extension is installed and enabled."
)


class Transport(Protocol):
    @property
    def connected(self) -> bool: ...

    def send(self, message: dict[str, Any]) -> None: ...

    async def start(self) -> Any: ...

    async def stop(self) -> None: ...


class BrowserBridge:
    """Owns the shared browser state, the session table, the router and the gateway."""

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        transport: Optional[Transport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or BridgeConfig()
        self.state = BrowserStateStore()
        self.sessions = SessionTable(
            idle_timeout=self.config.session_idle_timeout,
            sweep_interval=self.config.session_sweep_interval,
            clock=clock,
        )
        self.router = MessageRouter(self.state, self.sessions)
        self.transport: Transport = transport or ExtensionGateway(
            self.router,
            host=self.config.host,
            port_start=self.config.port_start,
            port_end=self.config.port_end,
            discovery=DiscoveryFile(self.config.discovery_dir),
        )

    async def __aenter__(self) -> "BrowserBridge":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    @property
    def extension_connected(self) -> bool:
        return self.transport.connected

    @property
    def browser_connected(self) -> bool:
        return self.state.connected

    @property
    def browser_info(self) -> Optional[BrowserInfo]:
        return self.state.browser_info

    async def start(self) -> Any:
        """Start listening for the extension and the idle sweeper. Returns the bound port."""
        port = await self.transport.start()
        self.sessions.start_cleanup()
        return port

    async def stop(self) -> None:
        await self.sessions.stop_cleanup()
        await self.transport.stop()
        self.sessions.drain_all(SessionClosedError)

    def list_tabs(self) -> list[TabRecord]:
        return list(self.state.tabs.values())

    def delete_session(self, session_id: str) -> bool:
        return self.sessions.delete(session_id)

    # ── operations ──────────────────────────────────────────────────────────

    async def connect(self, session_id: str = DEFAULT_SESSION_ID, launch: Optional[bool] = None) -> ConnectResult:
        session = self.sessions.get_or_create(session_id)
        if session.connect_in_progress:
            raise AlreadyInProgressError("Connection already in progress")
        self._ensure_connected(EXTENSION_MISSING_MESSAGE)
        message = self._request(ConnectRequest, session_id=session_id, launch=launch)

        session.connect_in_progress = True
        future = session.pending_connect.register(
            self.config.timeouts.connect, "Connection timeout - extension did not respond",
        )
        self._send(message, session.pending_connect.reject)
        return await future

    async def open_tab(self, url: str, session_id: str = DEFAULT_SESSION_ID, focus: bool = True) -> TabRecord:
        self._ensure_connected()
        session = self.sessions.get_or_create(session_id)
        request_id = generate_call_id(session, KIND_OPEN)
        message = self._request(OpenTabRequest, session_id=session_id, url=url, focus=focus, request_id=request_id)

        future = session.pending_open_tabs.register(
            request_id, self.config.timeouts.open_tab, "Timeout waiting for tab to open",
        )
        self._send(message, lambda e: session.pending_open_tabs.reject(request_id, e))
        tab: TabRecord = await future
        if focus:
            session.focused_tab_id = tab.id
        return tab

    async def focus_tab(self, tab_id: int, session_id: str = DEFAULT_SESSION_ID) -> TabRecord:
        self._ensure_connected()
        session = self.sessions.get_or_create(session_id)
        if tab_id in session.pending_focus_tabs:
            raise AlreadyInProgressError(f"Already focusing tab {tab_id}")
        request_id = generate_call_id(session, KIND_FOCUS)
        message = self._request(FocusTabRequest, session_id=session_id, tab_id=tab_id, request_id=request_id)

        future = session.pending_focus_tabs.register(
            tab_id, self.config.timeouts.focus_tab, "Timeout waiting for tab focus",
        )
        self._send(message, lambda e: session.pending_focus_tabs.reject(tab_id, e))
        tab: TabRecord = await future
        session.focused_tab_id = tab.id
        return tab

    async def close_tab(self, tab_id: int, session_id: str = DEFAULT_SESSION_ID) -> None:
        self._ensure_connected()
        session = self.sessions.get_or_create(session_id)
        if tab_id in session.pending_close_tabs:
            raise AlreadyInProgressError(f"Already closing tab {tab_id}")
        message = self._request(CloseTabRequest, session_id=session_id, tab_id=tab_id)

        future = session.pending_close_tabs.register(
            tab_id, self.config.timeouts.close_tab, "Timeout waiting for tab close",
        )
        self._send(message, lambda e: session.pending_close_tabs.reject(tab_id, e))
        await future

    async def call_page_tool(
        self,
        tab_id: int,
        tool_name: str,
        args: Optional[dict[str, Any]] = None,
        session_id: str = DEFAULT_SESSION_ID,
    ) -> Any:
        self._ensure_connected()
        session = self.sessions.get_or_create(session_id)
        call_id = generate_call_id(session, KIND_CALL)
        message = self._request(CallToolRequest, session_id=session_id, call_id=call_id, tab_id=tab_id,
                                tool_name=tool_name, args=args or {})

        future = session.pending_calls.register(
            call_id, self.config.timeouts.tool_call, "Timeout waiting for tool result", kind="tool_call",
        )
        self._send(message, lambda e: session.pending_calls.reject(call_id, e))
        return await future

    async def discover_tools_for_tab(self, tab_id: int, session_id: str = DEFAULT_SESSION_ID) -> list[ToolDescriptor]:
        self._ensure_connected()
        session = self.sessions.get_or_create(session_id)
        call_id = generate_call_id(session, KIND_DISCOVER)
        message = self._request(DiscoverToolsRequest, session_id=session_id, call_id=call_id, tab_id=tab_id)

        future = session.pending_calls.register(
            call_id, self.config.timeouts.tool_discovery, "Timeout waiting for tool discovery", kind="tool_discovery",
        )
        self._send(message, lambda e: session.pending_calls.reject(call_id, e))
        return await future

    # ── helpers ─────────────────────────────────────────────────────────────

    def _ensure_connected(self, message: str = NOT_CONNECTED_MESSAGE) -> None:
        if not self.transport.connected:
            raise NotConnectedError(message)

    @staticmethod
    def _request(model: type[WireModel], **fields: Any) -> dict[str, Any]:
        """Validate an outbound request and return its wire dict."""
        try:
            return model(**fields).to_wire()
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or model.__name__
            raise InvalidArgumentsError(f"Invalid {field}: {error['msg']}", details={"field": field}) from e

    def _send(self, message: dict[str, Any], reject: Callable[[BaseException], bool]) -> None:
        """Hand ``message`` to the transport. Any failure settles the pending entry instead of escaping."""
        try:
            self.transport.send(message)
        except BrowserMCPError as e:
            logger.warning("Send of %s failed: %s", message["type"], e)
            reject(e)
        except Exception as e:
            logger.warning("Send of %s failed: %s", message["type"], e)
            error = SendFailedError(f"Failed to send {message['type']}: {e}")
            error.__cause__ = e
            reject(error)
