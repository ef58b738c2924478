"""
Bridge configuration.

Precedence: explicit overrides > BROWSER_MCP_* environment variables >
~/.browser-mcp/config.json > defaults.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

logger = logging.getLogger("browser_mcp.config")

CONFIG_FILE = Path.home() / ".browser-mcp" / "config.json"
DEFAULT_SESSION_ID = "default"

ENV_PREFIX = "BROWSER_MCP_"
_ENV_FIELDS = ("host", "port_start", "port_end", "discovery_dir", "log_level")


class Timeouts(BaseModel):
    """Per-operation timeouts, in seconds."""
    connect: float = 5.0
    open_tab: float = 30.0
    focus_tab: float = 10.0
    close_tab: float = 5.0
    tool_call: float = 30.0
    tool_discovery: float = 10.0


class BridgeConfig(BaseModel):
    host: str = "127.0.0.1"
    port_start: int = 8765
    port_end: int = 8785
    discovery_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "browser-mcp")
    log_level: str = "INFO"

    session_idle_timeout: float = 30 * 60.0
    session_sweep_interval: float = 60.0
    timeouts: Timeouts = Field(default_factory=Timeouts)

    @model_validator(mode="after")
    def _check_port_range(self) -> "BridgeConfig":
        if self.port_end < self.port_start:
            raise ValueError(f"port_end {self.port_end} < port_start {self.port_start}")
        return self


def _load_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _load_env(environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for name in _ENV_FIELDS:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw:
            values[name] = raw.strip()
    return values


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[dict[str, str]] = None,
    **overrides: Any,
) -> BridgeConfig:
    values = _load_file(config_file or CONFIG_FILE)
    values.update(_load_env(environ))
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return BridgeConfig.model_validate(values)
    except ValidationError as e:
        raise ValueError(f"Invalid browser-mcp configuration: {e}") from e
