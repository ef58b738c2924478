"""CLI: browser-mcp status"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from browser_mcp.transport.discovery import list_servers

console = Console()


def _alive_text(alive: Optional[bool]) -> str:
    if alive is None:
        return "[dim]unknown[/dim]"
    return "[green]yes[/green]" if alive else "[red]no[/red]"


@click.command("status")
@click.option("--config", "config_file", type=click.Path(path_type=Path), default=None)
@click.option("--json-output", "--json", is_flag=True)
def status_cmd(config_file: Optional[Path], json_output: bool):
    """List running bridges from their discovery files."""
    from browser_mcp.cli.main import _load

    cfg = _load(config_file)
    servers = list_servers(cfg.discovery_dir)
    if json_output:
        click.echo(json.dumps(servers, indent=2))
        return
    if not servers:
        console.print(f"[yellow]No bridges found in {cfg.discovery_dir}[/yellow]")
        return
    table = Table(title=f"Bridges ({len(servers)})")
    table.add_column("PID", style="bold")
    table.add_column("Port")
    table.add_column("Started")
    table.add_column("Alive")
    for s in servers:
        started = s.get("startedAt")
        started_text = datetime.fromtimestamp(started / 1000).isoformat(timespec="seconds") if started else ""
        table.add_row(str(s["pid"]), str(s.get("port", "")), started_text,
                      _alive_text(s["alive"]))
    console.print(table)
