"""CLI: browser-mcp serve"""

import asyncio
import signal
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from browser_mcp.client import BrowserBridge
from browser_mcp.config import DEFAULT_SESSION_ID
from browser_mcp.stdio import StdioServer, open_stdin
from browser_mcp.tools import ToolDispatcher

console = Console(stderr=True)


def _run(coro):
    from browser_mcp.cli.main import _run
    return _run(coro)


@click.command("serve")
@click.option("--host", default=None, help="Interface to bind (default 127.0.0.1).")
@click.option("--port-start", type=int, default=None)
@click.option("--port-end", type=int, default=None)
@click.option("--log-level", default=None)
@click.option("--config", "config_file", type=click.Path(path_type=Path), default=None)
@click.option("--stdio", is_flag=True, help="Also serve browser tools as JSON-RPC on stdin/stdout.")
@click.option("--session", "session_id", default=DEFAULT_SESSION_ID, show_default=True,
              help="Session id used for --stdio tool calls.")
def serve_cmd(host: Optional[str], port_start: Optional[int], port_end: Optional[int],
              log_level: Optional[str], config_file: Optional[Path], stdio: bool, session_id: str):
    """Run the extension gateway until Ctrl+C (or stdin closes, with --stdio)."""
    from browser_mcp.cli.main import _load, _setup_logging

    cfg = _load(config_file, host=host, port_start=port_start, port_end=port_end, log_level=log_level)
    _setup_logging(cfg.log_level)

    async def _serve():
        bridge = BrowserBridge(cfg)
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows: Ctrl+C arrives as KeyboardInterrupt instead.
                pass
        port = await bridge.start()
        console.print(f"[green]Waiting for the browser extension on ws://{cfg.host}:{port}[/green]")

        stdio_task: Optional[asyncio.Task] = None
        if stdio:
            server = StdioServer(ToolDispatcher(bridge), session_id=session_id)
            stdio_task = loop.create_task(server.serve(await open_stdin()))
            stdio_task.add_done_callback(lambda _: stop.set())
        try:
            await stop.wait()
        finally:
            with console.status("Shutting down..."):
                if stdio_task is not None and not stdio_task.done():
                    stdio_task.cancel()
                await bridge.stop()
        if stdio_task is not None and stdio_task.done() and not stdio_task.cancelled() and stdio_task.exception():
            console.print(f"[red]stdio server failed: {stdio_task.exception()}[/red]")
        console.print("[dim]Stopped.[/dim]")

    _run(_serve())
