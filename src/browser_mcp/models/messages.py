"""
Wire messages exchanged with the browser extension.

One JSON object per WebSocket frame, discriminated by ``type``. Field names on
the wire are camelCase (``sessionId``, ``callId``, ``requestId``, ``tabId``).
"""

import logging
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from browser_mcp.models.browser import BrowserInfo, TabRecord, ToolDescriptor

logger = logging.getLogger("browser_mcp.models.messages")


class ExtensionMessageType:
    """Extension -> bridge"""
    PING = "ping"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    TAB_CREATED = "tabCreated"
    TAB_UPDATED = "tabUpdated"
    TAB_CLOSED = "tabClosed"
    TAB_FOCUSED = "tabFocused"
    TOOLS_CHANGED = "toolsChanged"
    TOOLS_DISCOVERED = "toolsDiscovered"
    TOOL_RESULT = "toolResult"


class ServerMessageType:
    """Bridge -> extension"""
    PONG = "pong"
    CONNECT = "connect"
    OPEN_TAB = "openTab"
    FOCUS_TAB = "focusTab"
    CLOSE_TAB = "closeTab"
    CALL_TOOL = "callTool"
    DISCOVER_TOOLS = "discoverTools"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── inbound ──────────────────────────────────────────────────────────────────

class ExtensionMessage(WireModel):
    type: str
    session_id: Optional[str] = None
    call_id: Optional[str] = None
    request_id: Optional[str] = None


class ConnectedMessage(ExtensionMessage):
    type: Literal["connected"]
    browser: BrowserInfo
    tabs: list[TabRecord] = []


class DisconnectedMessage(ExtensionMessage):
    type: Literal["disconnected"]


class TabCreatedMessage(ExtensionMessage):
    type: Literal["tabCreated"]
    tab: TabRecord


class TabUpdatedMessage(ExtensionMessage):
    type: Literal["tabUpdated"]
    tab: TabRecord


class TabClosedMessage(ExtensionMessage):
    type: Literal["tabClosed"]
    tab_id: int


class TabFocusedMessage(ExtensionMessage):
    type: Literal["tabFocused"]
    tab_id: int
    tools: list[ToolDescriptor] = []


class ToolsChangedMessage(ExtensionMessage):
    type: Literal["toolsChanged"]
    tab_id: int
    tools: list[ToolDescriptor] = []


class ToolsDiscoveredMessage(ExtensionMessage):
    type: Literal["toolsDiscovered"]
    call_id: str
    tab_id: int
    tools: list[ToolDescriptor] = []


class ToolResultMessage(ExtensionMessage):
    type: Literal["toolResult"]
    call_id: str
    result: Any = None
    error: Optional[str] = None


class PingMessage(ExtensionMessage):
    type: Literal["ping"]


InboundMessage = Union[
    ConnectedMessage, DisconnectedMessage, TabCreatedMessage, TabUpdatedMessage,
    TabClosedMessage, TabFocusedMessage, ToolsChangedMessage, ToolsDiscoveredMessage,
    ToolResultMessage, PingMessage,
]

INBOUND_MODELS: dict[str, type[ExtensionMessage]] = {
    ExtensionMessageType.PING: PingMessage,
    ExtensionMessageType.CONNECTED: ConnectedMessage,
    ExtensionMessageType.DISCONNECTED: DisconnectedMessage,
    ExtensionMessageType.TAB_CREATED: TabCreatedMessage,
    ExtensionMessageType.TAB_UPDATED: TabUpdatedMessage,
    ExtensionMessageType.TAB_CLOSED: TabClosedMessage,
    ExtensionMessageType.TAB_FOCUSED: TabFocusedMessage,
    ExtensionMessageType.TOOLS_CHANGED: ToolsChangedMessage,
    ExtensionMessageType.TOOLS_DISCOVERED: ToolsDiscoveredMessage,
    ExtensionMessageType.TOOL_RESULT: ToolResultMessage,
}


def parse_extension_message(raw: Any) -> Optional[ExtensionMessage]:
    """Validate an inbound message. Returns None for unknown or malformed input."""
    if not isinstance(raw, dict):
        logger.warning("Dropping non-object message from extension")
        return None
    mtype = raw.get("type")
    model = INBOUND_MODELS.get(mtype) if isinstance(mtype, str) else None
    if model is None:
        logger.debug("Ignoring unknown message type %r", raw.get("type"))
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning("Dropping malformed %s message: %s", raw.get("type"), e)
        return None


# ── outbound ─────────────────────────────────────────────────────────────────

class Pong(WireModel):
    type: Literal["pong"] = "pong"


class ConnectRequest(WireModel):
    type: Literal["connect"] = "connect"
    session_id: Optional[str] = None
    launch: Optional[bool] = None


class OpenTabRequest(WireModel):
    type: Literal["openTab"] = "openTab"
    session_id: Optional[str] = None
    url: str
    focus: bool = True
    request_id: Optional[str] = None


class FocusTabRequest(WireModel):
    type: Literal["focusTab"] = "focusTab"
    session_id: Optional[str] = None
    tab_id: int
    request_id: Optional[str] = None


class CloseTabRequest(WireModel):
    type: Literal["closeTab"] = "closeTab"
    session_id: Optional[str] = None
    tab_id: int


class CallToolRequest(WireModel):
    type: Literal["callTool"] = "callTool"
    session_id: Optional[str] = None
    call_id: str
    tab_id: int
    tool_name: str
    args: dict[str, Any] = {}


class DiscoverToolsRequest(WireModel):
    type: Literal["discoverTools"] = "discoverTools"
    session_id: Optional[str] = None
    call_id: str
    tab_id: int
