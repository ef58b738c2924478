"""
Line-delimited JSON-RPC front-end — exposes ToolDispatcher to one MCP client over stdin/stdout.

One JSON object per line in each direction. ``tools/call`` requests run
concurrently, so a slow page tool never blocks ``ping`` or other calls; their
responses may arrive out of order and are matched by ``id``. stdout carries
protocol frames only; logs go to stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Callable, Optional

from browser_mcp.config import DEFAULT_SESSION_ID
from browser_mcp.tools import ToolDispatcher

logger = logging.getLogger("browser_mcp.stdio")

SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2024-11-05"]
DEFAULT_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]
MAX_LINE_BYTES = 8 * 1024 * 1024

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def _write_stdout(line: bytes) -> None:
    sys.stdout.buffer.write(line)
    sys.stdout.buffer.flush()


async def open_stdin() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


class StdioServer:
    def __init__(
        self,
        dispatcher: ToolDispatcher,
        session_id: str = DEFAULT_SESSION_ID,
        write: Callable[[bytes], None] = _write_stdout,
    ):
        self._dispatcher = dispatcher
        self._session_id = session_id
        self._write = write
        self._calls: set[asyncio.Task] = set()

    async def serve(self, reader: asyncio.StreamReader) -> None:
        """Handle requests until EOF, then wait for in-flight tool calls."""
        while True:
            line = await reader.readline()
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except ValueError as e:
                logger.warning("Malformed JSON-RPC line: %s", e)
                self._error(None, PARSE_ERROR, "Parse error")
                continue
            self.dispatch(message)
        if self._calls:
            await asyncio.gather(*self._calls)

    def dispatch(self, message: Any) -> None:
        if not isinstance(message, dict):
            self._error(None, INVALID_REQUEST, "Invalid request")
            return
        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}

        if method == "initialize":
            self._initialize(request_id, params)
        elif isinstance(method, str) and method.startswith("notifications/"):
            return
        elif method == "tools/list":
            self._result(request_id, {"tools": self._dispatcher.list_tools(self._session_id)})
        elif method == "tools/call":
            task = asyncio.get_running_loop().create_task(
                self._call_tool(request_id, params.get("name") or "", params.get("arguments") or {}),
            )
            self._calls.add(task)
            task.add_done_callback(self._calls.discard)
        elif method == "ping":
            self._result(request_id, {})
        elif request_id is not None:
            self._error(request_id, METHOD_NOT_FOUND, f"Method {method} not found")

    def _initialize(self, request_id: Any, params: dict[str, Any]) -> None:
        from browser_mcp import __version__

        requested = params.get("protocolVersion")
        protocol = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else DEFAULT_PROTOCOL_VERSION
        self._result(request_id, {
            "protocolVersion": protocol,
            "serverInfo": {"name": "browser-mcp", "version": __version__},
            "capabilities": {"tools": {"listChanged": False}},
        })

    async def _call_tool(self, request_id: Any, name: str, arguments: Any) -> None:
        logger.info("tool=%s", name)
        if not isinstance(arguments, dict):
            self._error(request_id, INVALID_PARAMS, "arguments must be an object")
            return
        try:
            result = await self._dispatcher.call(name, arguments, self._session_id)
        except Exception as e:
            logger.exception("Tool %s failed", name)
            self._error(request_id, INTERNAL_ERROR, str(e))
            return
        self._result(request_id, result)

    def _result(self, request_id: Any, result: Any) -> None:
        self._send({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _error(self, request_id: Optional[Any], code: int, message: str) -> None:
        self._send({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})

    def _send(self, payload: dict[str, Any]) -> None:
        self._write((json.dumps(payload, ensure_ascii=False, default=str) + "\n").encode())
