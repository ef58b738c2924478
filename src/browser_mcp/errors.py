"""
browser-mcp error types.

Every public bridge operation either returns a typed payload or raises one of
these. Front-ends map them to textual tool errors via ``code`` and ``str(err)``.
"""

from typing import Any, Optional


class BrowserMCPError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class NotConnectedError(BrowserMCPError):
    def __init__(self, message: str = "Not connected to browser"):
        super().__init__("not_connected", message)


class AlreadyInProgressError(BrowserMCPError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("already_in_progress", message, details)


class OperationTimeoutError(BrowserMCPError):
    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__("timeout", message, {"kind": kind} if kind else None)
        self.kind = kind


class RemoteToolError(BrowserMCPError):
    """The extension reported an error string for a tool call."""

    def __init__(self, message: str):
        super().__init__("remote_tool_error", message)


class SessionClosedError(BrowserMCPError):
    def __init__(self, message: str = "Session closed", code: str = "session_closed"):
        super().__init__(code, message)


class ConnectionClosedError(SessionClosedError):
    def __init__(self, message: str = "Connection closed"):
        super().__init__(message, code="connection_closed")


class NotFoundError(BrowserMCPError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("not_found", message, details)


class InvalidArgumentsError(BrowserMCPError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("invalid_arguments", message, details)


class SendFailedError(BrowserMCPError):
    """A request could not be handed to the extension."""

    def __init__(self, message: str):
        super().__init__("send_failed", message)
