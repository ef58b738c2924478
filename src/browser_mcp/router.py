"""
Message router — the only consumer of inbound extension messages.

For each message: work out the owning session, apply browser-state changes,
then complete the matching pending operation. State changes always happen
before the continuation fires, so an awaiting caller sees them.

Session resolution order: ``sessionId`` > session decoded from ``callId`` >
session decoded from ``requestId`` > the default session.
"""

import logging
from typing import Any, Optional

from browser_mcp.callid import extract_session_id
from browser_mcp.config import DEFAULT_SESSION_ID
from browser_mcp.errors import ConnectionClosedError, RemoteToolError
from browser_mcp.models.browser import ConnectResult
from browser_mcp.models.messages import (
    ConnectedMessage,
    DisconnectedMessage,
    ExtensionMessage,
    PingMessage,
    TabClosedMessage,
    TabCreatedMessage,
    TabFocusedMessage,
    TabUpdatedMessage,
    ToolResultMessage,
    ToolsChangedMessage,
    ToolsDiscoveredMessage,
    parse_extension_message,
)
from browser_mcp.sessions import Session, SessionTable
from browser_mcp.state import BrowserStateStore

logger = logging.getLogger("browser_mcp.router")


class MessageRouter:
    def __init__(
        self,
        state: BrowserStateStore,
        sessions: SessionTable,
        default_session_id: str = DEFAULT_SESSION_ID,
    ):
        self._state = state
        self._sessions = sessions
        self._default_session_id = default_session_id

    def resolve_session_id(self, message: ExtensionMessage) -> str:
        if message.session_id:
            return message.session_id
        if message.call_id:
            decoded = extract_session_id(message.call_id)
            if decoded:
                return decoded
        if message.request_id:
            decoded = extract_session_id(message.request_id)
            if decoded:
                return decoded
        return self._default_session_id

    def handle(self, raw: Any) -> None:
        """Process one decoded JSON message from the extension."""
        message = parse_extension_message(raw)
        if message is None:
            return
        session_id = self.resolve_session_id(message)
        logger.debug("<- %s (session %s)", message.type, session_id)

        if isinstance(message, ConnectedMessage):
            self._on_connected(message, session_id)
        elif isinstance(message, DisconnectedMessage):
            self._state.set_connected(False)
        elif isinstance(message, TabCreatedMessage):
            self._on_tab_created(message, session_id)
        elif isinstance(message, TabUpdatedMessage):
            self._state.update_tab(message.tab)
        elif isinstance(message, TabClosedMessage):
            self._on_tab_closed(message, session_id)
        elif isinstance(message, TabFocusedMessage):
            self._on_tab_focused(message, session_id)
        elif isinstance(message, ToolsChangedMessage):
            self._state.set_tab_tools(message.tab_id, message.tools)
        elif isinstance(message, ToolsDiscoveredMessage):
            self._on_tools_discovered(message, session_id)
        elif isinstance(message, ToolResultMessage):
            self._on_tool_result(message, session_id)
        elif isinstance(message, PingMessage):
            # Answered by the gateway before routing.
            pass

    def handle_disconnect(self) -> int:
        """Extension socket closed: mark disconnected, reject pending work in every session."""
        self._state.set_connected(False)
        rejected = self._sessions.drain_all(ConnectionClosedError)
        if rejected:
            logger.warning("Extension disconnected; rejected %d pending operation(s)", rejected)
        return rejected

    # ── handlers ────────────────────────────────────────────────────────────

    def _owner(self, token: Optional[str], fallback: str) -> Optional[Session]:
        return self._sessions.get(extract_session_id(token) or fallback)

    def _on_connected(self, message: ConnectedMessage, session_id: str) -> None:
        self._state.set_connected(True, message.browser)
        for tab in message.tabs:
            self._state.put_tab(tab)
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.pending_connect.resolve(ConnectResult(
            name=message.browser.name,
            version=message.browser.version,
            tab_count=len(message.tabs),
        ))

    def _on_tab_created(self, message: TabCreatedMessage, session_id: str) -> None:
        self._state.put_tab(message.tab)
        if not message.request_id:
            return
        session = self._owner(message.request_id, session_id)
        if session is not None:
            session.pending_open_tabs.resolve(message.request_id, message.tab)

    def _on_tab_closed(self, message: TabClosedMessage, session_id: str) -> None:
        tab_id = message.tab_id
        self._state.remove_tab(tab_id)
        for session in self._sessions.list_all():
            if session.focused_tab_id == tab_id:
                session.focused_tab_id = None

        # The resolved session gets first claim; otherwise the first session
        # waiting on this tab. Exactly one waiter is satisfied.
        direct = self._sessions.get(session_id)
        if direct is not None and direct.pending_close_tabs.resolve(tab_id, None):
            return
        for session in self._sessions.list_all():
            if session is not direct and session.pending_close_tabs.resolve(tab_id, None):
                return

    def _on_tab_focused(self, message: TabFocusedMessage, session_id: str) -> None:
        self._state.set_tab_tools(message.tab_id, message.tools)
        tab = self._state.get_tab(message.tab_id)

        if message.request_id:
            session = self._owner(message.request_id, session_id)
            if session is not None and message.request_id in session.pending_open_tabs:
                if tab is None:
                    logger.debug("tabFocused for unknown tab %s; open still pending", message.tab_id)
                    return
                session.pending_open_tabs.resolve(message.request_id, tab)
                return

        session = self._sessions.get(session_id)
        if session is not None and tab is not None:
            session.pending_focus_tabs.resolve(message.tab_id, tab)

    def _on_tools_discovered(self, message: ToolsDiscoveredMessage, session_id: str) -> None:
        self._state.set_tab_tools(message.tab_id, message.tools)
        session = self._owner(message.call_id, session_id)
        if session is not None:
            session.pending_calls.resolve(message.call_id, list(message.tools))

    def _on_tool_result(self, message: ToolResultMessage, session_id: str) -> None:
        session = self._owner(message.call_id, session_id)
        if session is None:
            logger.debug("toolResult %s for unknown session", message.call_id)
            return
        if message.error:
            session.pending_calls.reject(message.call_id, RemoteToolError(message.error))
        else:
            session.pending_calls.resolve(message.call_id, message.result)
