"""
Extension gateway — local WebSocket server for the browser extension.

One extension connection at a time; a second concurrent connection is closed
immediately. Binds the first free port in the configured range and publishes it
through a discovery file. Keepalive pings are answered before routing.
"""

import asyncio
import errno
import json
import logging
from typing import Any, Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from browser_mcp.errors import NotConnectedError
from browser_mcp.models.messages import ExtensionMessageType, Pong
from browser_mcp.router import MessageRouter
from browser_mcp.transport.discovery import DiscoveryFile

logger = logging.getLogger("browser_mcp.transport.gateway")

MAX_MESSAGE_BYTES = 8 * 1024 * 1024
DUPLICATE_CLOSE_CODE = 1008


class ExtensionGateway:
    def __init__(
        self,
        router: MessageRouter,
        host: str = "127.0.0.1",
        port_start: int = 8765,
        port_end: int = 8785,
        discovery: Optional[DiscoveryFile] = None,
    ):
        self._router = router
        self._host = host
        self._port_start = port_start
        self._port_end = port_end
        self._discovery = discovery
        self._server: Optional[Server] = None
        self._ws: Optional[ServerConnection] = None
        self._port: Optional[int] = None
        self._send_tasks: set[asyncio.Task] = set()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def port(self) -> Optional[int]:
        return self._port

    async def start(self) -> int:
        """Bind the first free port in range. Returns the port."""
        if self._server is not None:
            return self._port  # type: ignore[return-value]

        ports = [0] if self._port_start == 0 else range(self._port_start, self._port_end + 1)
        for port in ports:
            try:
                self._server = await serve(
                    self._handle_connection, self._host, port,
                    max_size=MAX_MESSAGE_BYTES,
                    ping_interval=None,
                )
            except OSError as e:
                if e.errno in (errno.EADDRINUSE, errno.EACCES):
                    logger.debug("Port %d unavailable: %s", port, e)
                    continue
                raise
            self._port = self._server.sockets[0].getsockname()[1]
            break
        else:
            raise RuntimeError(f"No available ports in range {self._port_start}-{self._port_end}")

        logger.info("WebSocket server listening on ws://%s:%d", self._host, self._port)
        if self._discovery is not None:
            self._discovery.write(self._port)
        return self._port

    async def stop(self) -> None:
        if self._discovery is not None:
            self._discovery.remove()
        server, self._server = self._server, None
        if server is not None:
            server.close()
            await server.wait_closed()
        for task in list(self._send_tasks):
            task.cancel()
        self._port = None

    def send(self, message: dict[str, Any]) -> None:
        """Queue one message for the extension. Raises NotConnectedError when nobody is attached."""
        ws = self._ws
        if ws is None:
            raise NotConnectedError("Extension not connected")
        payload = json.dumps(message)

        async def _do_send() -> None:
            try:
                await ws.send(payload)
            except ConnectionClosed as e:
                logger.error("Send failed for %s: %s", message.get("type"), e)

        task = asyncio.get_running_loop().create_task(_do_send())
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _handle_connection(self, ws: ServerConnection) -> None:
        if self._ws is not None:
            logger.warning("Rejecting duplicate extension connection from %s", ws.remote_address)
            await ws.close(DUPLICATE_CLOSE_CODE, "Another extension is already connected")
            return

        self._ws = ws
        logger.info("Extension connected from %s", ws.remote_address)
        try:
            async for data in ws:
                self._on_frame(data)
        except ConnectionClosed as e:
            logger.info("Extension socket closed: %s", e)
        finally:
            if self._ws is ws:
                self._ws = None
                logger.info("Extension disconnected")
                self._router.handle_disconnect()

    def _on_frame(self, data: Any) -> None:
        try:
            message = json.loads(data)
        except (TypeError, ValueError) as e:
            logger.error("Failed to parse message from extension: %s", e)
            return
        if isinstance(message, dict) and message.get("type") == ExtensionMessageType.PING:
            self.send(Pong().to_wire())
            return
        self._router.handle(message)
