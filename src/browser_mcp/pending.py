"""
Pending operations — one asyncio future plus one timeout timer per in-flight request.

Every completion path (reply, timeout, drain, caller cancellation) removes the
entry from its container and cancels its timer before the future is touched.
Whoever removes the entry owns the single completion; everyone else sees a
no-op.
"""

import asyncio
import logging
from typing import Any, Callable, Generic, Hashable, Iterator, Optional, TypeVar

from browser_mcp.errors import AlreadyInProgressError, BrowserMCPError, OperationTimeoutError

logger = logging.getLogger("browser_mcp.pending")

K = TypeVar("K", bound=Hashable)


class PendingOperation:
    """One-shot result cell. ``settle`` succeeds once; later calls return False."""

    __slots__ = ("future", "timer", "kind")

    def __init__(self, future: asyncio.Future, kind: str):
        self.future = future
        self.timer: Optional[asyncio.TimerHandle] = None
        self.kind = kind

    @property
    def done(self) -> bool:
        return self.future.done()

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def resolve(self, value: Any) -> bool:
        self.cancel_timer()
        if self.future.done():
            return False
        self.future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        self.cancel_timer()
        if self.future.done():
            return False
        self.future.set_exception(exc)
        return True


class PendingMap(Generic[K]):
    """Pending operations of one kind, keyed by correlation token or tab id."""

    def __init__(self, kind: str, on_settle: Optional[Callable[[K], None]] = None):
        self.kind = kind
        self._ops: dict[K, PendingOperation] = {}
        self._on_settle = on_settle

    def __contains__(self, key: object) -> bool:
        return key in self._ops

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._ops))

    def register(
        self,
        key: K,
        timeout: float,
        timeout_message: str,
        kind: Optional[str] = None,
    ) -> asyncio.Future:
        """Create the pending entry and arm its timer. Must run inside the event loop."""
        if key in self._ops:
            raise AlreadyInProgressError(
                f"{self.kind} already in progress for {key!r}",
                details={"kind": self.kind, "key": key},
            )
        loop = asyncio.get_running_loop()
        op = PendingOperation(loop.create_future(), kind or self.kind)
        self._ops[key] = op
        op.timer = loop.call_later(timeout, self._expire, key, op, timeout_message)
        op.future.add_done_callback(lambda f: self._forget_cancelled(key, op, f))
        return op.future

    def resolve(self, key: K, value: Any) -> bool:
        """Complete ``key`` successfully. Unknown or already-completed keys are a no-op."""
        op = self._take(key)
        if op is None:
            logger.debug("No pending %s for %r; ignoring late reply", self.kind, key)
            return False
        return op.resolve(value)

    def reject(self, key: K, exc: BaseException) -> bool:
        op = self._take(key)
        if op is None:
            logger.debug("No pending %s for %r; ignoring late error", self.kind, key)
            return False
        return op.reject(exc)

    def drain(self, make_error: Callable[[], BaseException]) -> int:
        """Reject and remove every entry. Returns the number rejected."""
        count = 0
        for key in list(self._ops):
            op = self._take(key)
            if op is not None and op.reject(make_error()):
                count += 1
        return count

    def _take(self, key: K) -> Optional[PendingOperation]:
        op = self._ops.pop(key, None)
        if op is None:
            return None
        op.cancel_timer()
        if self._on_settle is not None:
            self._on_settle(key)
        return op

    def _expire(self, key: K, op: PendingOperation, message: str) -> None:
        if self._ops.get(key) is not op:
            return
        self._take(key)
        logger.info("%s %r timed out", op.kind, key)
        op.reject(OperationTimeoutError(message, op.kind))

    def _forget_cancelled(self, key: K, op: PendingOperation, future: asyncio.Future) -> None:
        if future.cancelled() and self._ops.get(key) is op:
            self._take(key)


class PendingSlot:
    """At most one pending operation (the per-session connect handshake)."""

    _KEY = "slot"

    def __init__(self, kind: str, on_settle: Optional[Callable[[], None]] = None):
        self._map: PendingMap[str] = PendingMap(
            kind, on_settle=(lambda _key: on_settle()) if on_settle else None,
        )

    @property
    def kind(self) -> str:
        return self._map.kind

    @property
    def active(self) -> bool:
        return self._KEY in self._map

    def register(self, timeout: float, timeout_message: str) -> asyncio.Future:
        return self._map.register(self._KEY, timeout, timeout_message)

    def resolve(self, value: Any) -> bool:
        return self._map.resolve(self._KEY, value)

    def reject(self, exc: BaseException) -> bool:
        return self._map.reject(self._KEY, exc)

    def drain(self, make_error: Callable[[], BrowserMCPError]) -> int:
        return self._map.drain(make_error)
