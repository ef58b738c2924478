"""
browser-mcp — bridge between an automation client and a live browser.

Tool calls from any number of client sessions are proxied to pages through a
browser extension over one local WebSocket.
"""

from browser_mcp.client import BrowserBridge
from browser_mcp.config import BridgeConfig, Timeouts, load_config
from browser_mcp.errors import (
    AlreadyInProgressError,
    BrowserMCPError,
    ConnectionClosedError,
    InvalidArgumentsError,
    NotConnectedError,
    NotFoundError,
    OperationTimeoutError,
    RemoteToolError,
    SendFailedError,
    SessionClosedError,
)
from browser_mcp.models.browser import BrowserInfo, ConnectResult, TabRecord, ToolDescriptor
from browser_mcp.tools import ToolDispatcher

__version__ = "0.1.0"
__all__ = [
    "BrowserBridge",
    "BridgeConfig",
    "Timeouts",
    "load_config",
    "ToolDispatcher",
    "BrowserMCPError",
    "NotConnectedError",
    "AlreadyInProgressError",
    "OperationTimeoutError",
    "RemoteToolError",
    "SessionClosedError",
    "ConnectionClosedError",
    "NotFoundError",
    "InvalidArgumentsError",
    "SendFailedError",
    "BrowserInfo",
    "ConnectResult",
    "TabRecord",
    "ToolDescriptor",
]
