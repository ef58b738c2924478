"""
browser-mcp CLI — `browser-mcp` command.

Commands:
  browser-mcp serve        Run the extension gateway until interrupted
                           (--stdio: also answer MCP tool calls on stdin/stdout)
  browser-mcp status       List bridges advertised in the discovery directory
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from browser_mcp.config import BridgeConfig, load_config

console = Console(stderr=True)


def _load(config_file: Optional[Path] = None, **overrides: Any) -> BridgeConfig:
    try:
        return load_config(config_file=config_file, **overrides)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(2)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
def main():
    """browser-mcp — drive a live browser through its extension."""


# Register subcommands from separate modules
from browser_mcp.cli.serve import serve_cmd
from browser_mcp.cli.status import status_cmd

main.add_command(serve_cmd)
main.add_command(status_cmd)


if __name__ == "__main__":
    main()
