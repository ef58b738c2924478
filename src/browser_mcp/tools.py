"""
Tool dispatcher — maps MCP-style tool calls onto BrowserBridge operations.

Built-in tools manage the browser connection and tabs. Any other tool name is
forwarded to the calling session's focused tab. Failures come back as
``isError`` text results; correlation tokens never appear in them.
"""

import json
from typing import Any, Optional

from browser_mcp.client import BrowserBridge
from browser_mcp.config import DEFAULT_SESSION_ID
from browser_mcp.errors import BrowserMCPError, InvalidArgumentsError, NotConnectedError, NotFoundError
from browser_mcp.models.browser import ToolDescriptor

CONNECT_BROWSER = ToolDescriptor(
    name="connect_browser",
    description="Connect to the browser. Must be called first before any browser operations.",
    input_schema={
        "type": "object",
        "properties": {
            "launch": {
                "type": "boolean",
                "description": "Launch new browser instance if none found",
                "default": False,
            },
        },
    },
)

LIST_TABS = ToolDescriptor(
    name="list_tabs",
    description="List all open browser tabs with their IDs, titles, and URLs",
    input_schema={"type": "object", "properties": {}},
)

OPEN_TAB = ToolDescriptor(
    name="open_tab",
    description="Open a new browser tab with the specified URL",
    input_schema={
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "URL to open"},
            "focus": {
                "type": "boolean",
                "description": "Focus the new tab after opening (loads its tools)",
                "default": True,
            },
        },
        "required": ["url"],
    },
)

FOCUS_TAB = ToolDescriptor(
    name="focus_tab",
    description="Switch focus to a different tab, loading its page-specific tools",
    input_schema={
        "type": "object",
        "properties": {"tabId": {"type": "number", "description": "ID of the tab to focus"}},
        "required": ["tabId"],
    },
)

CLOSE_TAB = ToolDescriptor(
    name="close_tab",
    description="Close a browser tab",
    input_schema={
        "type": "object",
        "properties": {
            "tabId": {"type": "number", "description": "ID of tab to close. Defaults to focused tab."},
        },
    },
)

BUILTIN_TOOLS = [CONNECT_BROWSER, LIST_TABS, OPEN_TAB, FOCUS_TAB, CLOSE_TAB]
BUILTIN_NAMES = {tool.name for tool in BUILTIN_TOOLS}


def text_result(payload: Any, is_error: bool = False) -> dict[str, Any]:
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2, default=str)
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


class ToolDispatcher:
    def __init__(self, bridge: BrowserBridge):
        self._bridge = bridge

    def list_tools(self, session_id: str = DEFAULT_SESSION_ID) -> list[dict[str, Any]]:
        """Built-in tools, then the focused tab's page tools (if any)."""
        tools = list(BUILTIN_TOOLS)
        session = self._bridge.sessions.get(session_id)
        if session is not None and session.focused_tab_id is not None:
            tab = self._bridge.state.get_tab(session.focused_tab_id)
            if tab is not None:
                tools.extend(t for t in tab.tools if t.name not in BUILTIN_NAMES)
        return [t.model_dump(by_alias=True, exclude_none=True) for t in tools]

    async def call(self, name: str, args: Optional[dict[str, Any]] = None,
                   session_id: str = DEFAULT_SESSION_ID) -> dict[str, Any]:
        try:
            result = await self._handle(name, args or {}, session_id)
        except BrowserMCPError as e:
            return text_result(f"Error: {e}", is_error=True)
        return text_result(result)

    async def _handle(self, name: str, args: dict[str, Any], session_id: str) -> Any:
        bridge = self._bridge

        if name == "connect_browser":
            info = await bridge.connect(session_id, launch=args.get("launch"))
            return {
                "connected": True,
                "browser": {"name": info.name, "version": info.version},
                "tabCount": info.tab_count,
            }

        self._require_browser()
        session = bridge.sessions.get_or_create(session_id)

        if name == "list_tabs":
            return {
                "tabs": [
                    {
                        "id": tab.id,
                        "title": tab.title,
                        "url": tab.url,
                        "focused": tab.id == session.focused_tab_id,
                        "toolCount": len(tab.tools),
                    }
                    for tab in bridge.list_tabs()
                ],
                "focusedTabId": session.focused_tab_id,
            }

        if name == "open_tab":
            url = args.get("url")
            if not url:
                raise InvalidArgumentsError("url is required")
            if not isinstance(url, str):
                raise InvalidArgumentsError(f"url must be a string, got {type(url).__name__}")
            focus = args.get("focus", True)
            tab = await bridge.open_tab(url, session_id, focus=bool(focus))
            return {
                "tab": {"id": tab.id, "title": tab.title, "url": tab.url},
                "focused": bool(focus),
                "toolsAvailable": [t.name for t in tab.tools] if focus else [],
            }

        if name == "focus_tab":
            tab_id = self._tab_id(args.get("tabId"))
            if tab_id is None:
                raise InvalidArgumentsError("tabId is required")
            tab = await bridge.focus_tab(tab_id, session_id)
            return {
                "success": True,
                "tab": {"id": tab.id, "title": tab.title, "url": tab.url},
                "toolsAvailable": [t.name for t in tab.tools],
            }

        if name == "close_tab":
            tab_id = self._tab_id(args.get("tabId"))
            if tab_id is None:
                tab_id = session.focused_tab_id
            if tab_id is None:
                raise InvalidArgumentsError("No tab specified and no tab is focused")
            self._tab_id(tab_id)
            await bridge.close_tab(tab_id, session_id)
            if session.focused_tab_id == tab_id:
                session.focused_tab_id = None
            return {"closed": True, "tabId": tab_id}

        if session.focused_tab_id is None:
            raise BrowserMCPError("no_focused_tab", "No tab is focused. Call focus_tab first.")
        return await bridge.call_page_tool(session.focused_tab_id, name, args, session_id)

    def _require_browser(self) -> None:
        if not self._bridge.browser_connected:
            raise NotConnectedError("Not connected. Call connect_browser first.")

    def _tab_id(self, raw: Any) -> Optional[int]:
        """Coerce a tabId argument and check it names a known tab."""
        if raw is None:
            return None
        try:
            tab_id = int(raw)
        except (TypeError, ValueError):
            raise InvalidArgumentsError(f"Invalid tabId: {raw!r}")
        if not self._bridge.state.has_tab(tab_id):
            raise NotFoundError(f"Tab {tab_id} not found", details={"tabId": tab_id})
        return tab_id
