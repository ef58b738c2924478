from browser_mcp.models.browser import BrowserInfo, ConnectResult, TabRecord, ToolDescriptor
from browser_mcp.models.messages import ExtensionMessageType, ServerMessageType

__all__ = [
    "BrowserInfo",
    "ConnectResult",
    "TabRecord",
    "ToolDescriptor",
    "ExtensionMessageType",
    "ServerMessageType",
]
