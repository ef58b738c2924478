"""
Discovery files — how the extension finds running bridges.

Each bridge writes ``<discovery_dir>/server-<pid>.json`` with
``{port, pid, startedAt}`` once it is listening and removes it on shutdown.
The extension scans the directory (or the port range) and connects to each.
"""

import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("browser_mcp.transport.discovery")

_IS_WINDOWS = sys.platform == "win32"


class DiscoveryFile:
    def __init__(self, directory: Path, pid: Optional[int] = None):
        self._directory = Path(directory)
        self._pid = pid if pid is not None else os.getpid()
        self._path: Optional[Path] = None

    @property
    def path(self) -> Path:
        return self._directory / f"server-{self._pid}.json"

    def write(self, port: int) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        info = {"port": port, "pid": self._pid, "startedAt": int(time.time() * 1000)}
        self.path.write_text(json.dumps(info, indent=2))
        self._path = self.path
        logger.info("Discovery file written: %s", self._path)
        return self._path

    def remove(self) -> None:
        path, self._path = self._path, None
        if path is None:
            return
        try:
            path.unlink()
            logger.info("Discovery file removed: %s", path)
        except FileNotFoundError:
            pass


def _pid_alive(pid: int) -> Optional[bool]:
    """POSIX signal-0 liveness check. None where liveness cannot be checked without side effects."""
    if _IS_WINDOWS:
        # On Windows os.kill(pid, 0) terminates the process.
        return None
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def list_servers(directory: Path) -> list[dict[str, Any]]:
    """Read every discovery file in ``directory``. Adds ``alive`` per entry (None when unknown)."""
    servers: list[dict[str, Any]] = []
    directory = Path(directory)
    if not directory.is_dir():
        return servers
    for path in sorted(directory.glob("server-*.json")):
        try:
            info = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.debug("Skipping unreadable discovery file %s: %s", path, e)
            continue
        if not isinstance(info, dict) or not isinstance(info.get("pid"), int):
            continue
        info["alive"] = _pid_alive(info["pid"])
        info["file"] = str(path)
        servers.append(info)
    return servers
