import pytest

from browser_mcp import BridgeConfig, BrowserBridge, Timeouts
from helpers import FAST_TIMEOUTS, FakeClock, FakeTransport


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bridge(transport: FakeTransport, clock: FakeClock) -> BrowserBridge:
    return BrowserBridge(BridgeConfig(), transport=transport, clock=clock)


@pytest.fixture
def fast_bridge(transport: FakeTransport, clock: FakeClock) -> BrowserBridge:
    """Bridge whose every timeout is 50 ms."""
    return BrowserBridge(BridgeConfig(timeouts=Timeouts(**FAST_TIMEOUTS)), transport=transport, clock=clock)
