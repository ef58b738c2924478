"""Loopback tests: a websockets client plays the browser extension."""

import asyncio
import json
import os
import sys

import pytest
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from browser_mcp import BridgeConfig, BrowserBridge, ConnectionClosedError, NotConnectedError
from browser_mcp.router import MessageRouter
from browser_mcp.sessions import SessionTable
from browser_mcp.state import BrowserStateStore
from browser_mcp.transport import discovery
from browser_mcp.transport.discovery import DiscoveryFile, list_servers
from browser_mcp.transport.gateway import ExtensionGateway
from helpers import CONNECTED, started


def make_gateway(tmp_path, pid=4242):
    state = BrowserStateStore()
    router = MessageRouter(state, SessionTable())
    gateway = ExtensionGateway(router, port_start=0, discovery=DiscoveryFile(tmp_path, pid=pid))
    return gateway, state


async def ping(ws) -> None:
    """Round-trip a ping; everything sent before it has been handled."""
    await ws.send(json.dumps({"type": "ping"}))
    assert json.loads(await ws.recv()) == {"type": "pong"}


class TestGateway:
    @pytest.mark.asyncio
    async def test_ping_pong_routing_and_discovery_file(self, tmp_path):
        gateway, state = make_gateway(tmp_path)
        port = await gateway.start()
        info = json.loads((tmp_path / "server-4242.json").read_text())
        assert info["port"] == port
        assert info["pid"] == 4242
        try:
            async with connect(f"ws://127.0.0.1:{port}") as ws:
                await ping(ws)
                assert gateway.connected
                await ws.send("{not json")
                await ws.send(json.dumps(CONNECTED))
                await ping(ws)
                assert state.connected
                assert state.has_tab(1)
        finally:
            await gateway.stop()
        assert not (tmp_path / "server-4242.json").exists()

    @pytest.mark.asyncio
    async def test_second_extension_is_turned_away(self, tmp_path):
        gateway, _ = make_gateway(tmp_path)
        port = await gateway.start()
        try:
            async with connect(f"ws://127.0.0.1:{port}") as first:
                await ping(first)
                async with connect(f"ws://127.0.0.1:{port}") as second:
                    with pytest.raises(ConnectionClosed):
                        await second.recv()
                    assert second.close_code == 1008
                await ping(first)
                assert gateway.connected
        finally:
            await gateway.stop()

    @pytest.mark.asyncio
    async def test_send_without_extension_fails_fast(self, tmp_path):
        gateway, _ = make_gateway(tmp_path)
        with pytest.raises(NotConnectedError):
            gateway.send({"type": "connect"})

    @pytest.mark.asyncio
    async def test_busy_range_is_reported(self, tmp_path):
        holder, _ = make_gateway(tmp_path, pid=1)
        port = await holder.start()
        try:
            state = BrowserStateStore()
            gateway = ExtensionGateway(MessageRouter(state, SessionTable()), port_start=port, port_end=port)
            with pytest.raises(RuntimeError, match="No available ports"):
                await gateway.start()
        finally:
            await holder.stop()


class TestBridgeOverWebSocket:
    @pytest.mark.asyncio
    async def test_call_round_trip_and_disconnect_drain(self, tmp_path):
        bridge = BrowserBridge(BridgeConfig(port_start=0, discovery_dir=tmp_path))
        port = await bridge.start()
        assert [s["port"] for s in list_servers(tmp_path)] == [port]
        try:
            async with connect(f"ws://127.0.0.1:{port}") as ws:
                await ping(ws)

                call = await started(bridge.call_page_tool(1, "search", {"q": "x"}, "s1"))
                request = json.loads(await ws.recv())
                assert request["type"] == "callTool"
                await ws.send(json.dumps({"type": "toolResult", "callId": request["callId"], "result": [1, 2]}))
                assert await call == [1, 2]

                pending = await started(bridge.call_page_tool(1, "search", {}, "s1"))
                await ws.recv()
            with pytest.raises(ConnectionClosedError):
                await asyncio.wait_for(pending, timeout=2.0)
            assert not bridge.extension_connected
        finally:
            await bridge.stop()
        assert list_servers(tmp_path) == []


class TestDiscoveryListing:
    def test_liveness_is_unknown_on_windows_and_never_signalled(self, tmp_path, monkeypatch):
        DiscoveryFile(tmp_path, pid=4242).write(8765)
        kills = []
        monkeypatch.setattr(discovery, "_IS_WINDOWS", True)
        monkeypatch.setattr(discovery.os, "kill", lambda *args: kills.append(args))

        servers = list_servers(tmp_path)
        assert [(s["pid"], s["port"], s["alive"]) for s in servers] == [(4242, 8765, None)]
        assert kills == []

    @pytest.mark.skipif(sys.platform == "win32", reason="signal 0 check is POSIX only")
    def test_liveness_check_on_posix(self, tmp_path, monkeypatch):
        DiscoveryFile(tmp_path, pid=os.getpid()).write(8765)
        monkeypatch.setattr(discovery, "_IS_WINDOWS", False)
        assert list_servers(tmp_path)[0]["alive"] is True

    def test_unreadable_files_are_skipped(self, tmp_path):
        (tmp_path / "server-1.json").write_text("{not json")
        (tmp_path / "server-2.json").write_text(json.dumps({"port": 1}))
        assert list_servers(tmp_path) == []
