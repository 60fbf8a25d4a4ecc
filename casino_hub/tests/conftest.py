"""
Test configuration and fixtures for the Casino Hub test suite.

This module sets the test environment, resets the config singleton around
every test and provides hub, registry and connection fixtures.
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio

# Set environment variables before anything reads configuration
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LEVEL", "WARNING")

# Imports must come after environment variables
from casino_hub.config import HubConfig, reset_config  # noqa: E402
from casino_hub.realtime.connection import ClientConnection  # noqa: E402
from casino_hub.realtime.hub import BroadcastHub  # noqa: E402
from casino_hub.realtime.rate_limiter import RateLimiter  # noqa: E402
from casino_hub.realtime.session_registry import SessionRegistry  # noqa: E402
from casino_hub.tests.fakes import FakeMemoryMonitor, FakeWebSocket  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def hub_config() -> HubConfig:
    return HubConfig(online_count_debounce_seconds=0.01)


@pytest.fixture
def fake_memory_monitor() -> FakeMemoryMonitor:
    return FakeMemoryMonitor()


@pytest_asyncio.fixture
async def hub(hub_config: HubConfig, fake_memory_monitor: FakeMemoryMonitor) -> AsyncGenerator[BroadcastHub, None]:
    """A hub on the test's event loop, shut down afterwards."""
    broadcast_hub = BroadcastHub(hub_config, memory_monitor=fake_memory_monitor)
    yield broadcast_hub
    await broadcast_hub.shutdown(grace=0.5)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(RateLimiter(), max_connections=3, reserved_words=HubConfig().reserved_nickname_words)


@pytest.fixture
def make_connection():
    """Factory for connections whose writer is not started."""

    def _make(headers: dict[str, str] | None = None) -> ClientConnection:
        return ClientConnection(FakeWebSocket(headers=headers), queue_size=16)

    return _make
