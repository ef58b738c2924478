"""
Shared browser state — one browser, one set of tabs, visible to every session.

Only the message router writes here; session-initiated operations only read.
"""

import logging
from typing import Optional

from browser_mcp.models.browser import BrowserInfo, TabRecord, ToolDescriptor

logger = logging.getLogger("browser_mcp.state")


class BrowserStateStore:
    def __init__(self) -> None:
        self._connected = False
        self._browser_info: Optional[BrowserInfo] = None
        self._tabs: dict[int, TabRecord] = {}

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def browser_info(self) -> Optional[BrowserInfo]:
        return self._browser_info

    @property
    def tabs(self) -> dict[int, TabRecord]:
        """Snapshot of the tab table."""
        return dict(self._tabs)

    def get_tab(self, tab_id: int) -> Optional[TabRecord]:
        return self._tabs.get(tab_id)

    def has_tab(self, tab_id: int) -> bool:
        return tab_id in self._tabs

    def set_connected(self, connected: bool, browser_info: Optional[BrowserInfo] = None) -> None:
        self._connected = connected
        self._browser_info = browser_info if connected else None
        if connected:
            logger.info("Browser connected: %s", browser_info.name if browser_info else "unknown")
        else:
            self._tabs.clear()
            logger.info("Browser disconnected")

    def put_tab(self, tab: TabRecord) -> None:
        """Insert or replace a tab record."""
        self._tabs[tab.id] = tab

    def update_tab(self, tab: TabRecord) -> None:
        """Replace title/url. An update without tools keeps the tools already discovered."""
        existing = self._tabs.get(tab.id)
        if existing is not None and not tab.tools:
            tab = tab.model_copy(update={"tools": existing.tools})
        self._tabs[tab.id] = tab

    def remove_tab(self, tab_id: int) -> Optional[TabRecord]:
        return self._tabs.pop(tab_id, None)

    def set_tab_tools(self, tab_id: int, tools: list[ToolDescriptor]) -> bool:
        """Replace a known tab's tool list. Unknown tabs are left alone."""
        tab = self._tabs.get(tab_id)
        if tab is None:
            return False
        tab.tools = list(tools)
        return True
