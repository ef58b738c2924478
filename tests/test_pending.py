import asyncio

import pytest

from browser_mcp.errors import AlreadyInProgressError, OperationTimeoutError, SessionClosedError
from browser_mcp.pending import PendingMap, PendingSlot


class TestPendingMap:
    @pytest.mark.asyncio
    async def test_resolve_once(self):
        pending: PendingMap[str] = PendingMap("tool_call")
        future = pending.register("s1_call_1", 5.0, "Timeout waiting for tool result")
        assert "s1_call_1" in pending

        assert pending.resolve("s1_call_1", {"ok": True}) is True
        assert "s1_call_1" not in pending
        assert await future == {"ok": True}

        # Late or duplicate replies are no-ops, not errors.
        assert pending.resolve("s1_call_1", "again") is False
        assert pending.reject("s1_call_1", RuntimeError("late")) is False

    @pytest.mark.asyncio
    async def test_timeout_removes_entry_then_rejects(self):
        pending: PendingMap[str] = PendingMap("tool_call")
        future = pending.register("s1_call_1", 0.01, "Timeout waiting for tool result")
        with pytest.raises(OperationTimeoutError, match="Timeout waiting for tool result") as exc:
            await future
        assert exc.value.kind == "tool_call"
        assert len(pending) == 0
        assert pending.resolve("s1_call_1", "too late") is False

    @pytest.mark.asyncio
    async def test_resolution_cancels_timer(self):
        pending: PendingMap[int] = PendingMap("close_tab")
        future = pending.register(7, 0.02, "Timeout waiting for tab close")
        pending.resolve(7, None)
        await asyncio.sleep(0.05)
        assert future.result() is None

    @pytest.mark.asyncio
    async def test_duplicate_key_refused_without_replacing(self):
        pending: PendingMap[int] = PendingMap("close_tab")
        first = pending.register(7, 5.0, "Timeout waiting for tab close")
        with pytest.raises(AlreadyInProgressError):
            pending.register(7, 5.0, "Timeout waiting for tab close")
        pending.resolve(7, None)
        assert await first is None

    @pytest.mark.asyncio
    async def test_drain_rejects_everything_once(self):
        pending: PendingMap[str] = PendingMap("open_tab")
        futures = [pending.register(f"s1_open_{i}", 5.0, "Timeout waiting for tab to open") for i in range(3)]
        assert pending.drain(SessionClosedError) == 3
        assert len(pending) == 0
        assert pending.drain(SessionClosedError) == 0
        for future in futures:
            with pytest.raises(SessionClosedError):
                await future

    @pytest.mark.asyncio
    async def test_cancelled_waiter_frees_its_key(self):
        pending: PendingMap[int] = PendingMap("close_tab")
        future = pending.register(7, 5.0, "Timeout waiting for tab close")
        future.cancel()
        await asyncio.sleep(0)
        assert 7 not in pending
        # Key is reusable once the cancelled entry is gone.
        pending.register(7, 5.0, "Timeout waiting for tab close")

    @pytest.mark.asyncio
    async def test_per_call_kind_overrides_map_kind(self):
        pending: PendingMap[str] = PendingMap("tool_call")
        future = pending.register("s1_discover_1", 0.01, "Timeout waiting for tool discovery", kind="tool_discovery")
        with pytest.raises(OperationTimeoutError) as exc:
            await future
        assert exc.value.kind == "tool_discovery"


class TestPendingSlot:
    @pytest.mark.asyncio
    async def test_single_occupant(self):
        settled = []
        slot = PendingSlot("connect", on_settle=lambda: settled.append(True))
        future = slot.register(5.0, "Connection timeout - extension did not respond")
        assert slot.active
        with pytest.raises(AlreadyInProgressError):
            slot.register(5.0, "Connection timeout - extension did not respond")
        assert slot.resolve("done") is True
        assert not slot.active
        assert settled == [True]
        assert await future == "done"
        assert slot.resolve("again") is False

    @pytest.mark.asyncio
    async def test_timeout_runs_settle_hook(self):
        settled = []
        slot = PendingSlot("connect", on_settle=lambda: settled.append(True))
        future = slot.register(0.01, "Connection timeout - extension did not respond")
        with pytest.raises(OperationTimeoutError, match="Connection timeout"):
            await future
        assert settled == [True]
        assert not slot.active
