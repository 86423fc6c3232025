"""Pytest configuration and shared fixtures."""

import os
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from rpc_messenger.application.messenger import Messenger
from rpc_messenger.application.multiplexer import Multiplexer
from rpc_messenger.infrastructure.config import MessengerConfig
from rpc_messenger.infrastructure.in_memory_metrics import InMemoryMetrics
from rpc_messenger.infrastructure.in_memory_transport import InMemoryBroker, InMemoryTransport


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    mock = MagicMock()
    mock.info = MagicMock()
    mock.warning = MagicMock()
    mock.error = MagicMock()
    mock.debug = MagicMock()
    mock.exception = MagicMock()
    return mock


@pytest.fixture
def mock_transport():
    """Create a mock transport for testing."""
    mock = AsyncMock()
    mock.is_connected = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def metrics():
    """Fresh in-memory metrics."""
    return InMemoryMetrics()


@pytest.fixture
def broker():
    """Shared in-memory broker."""
    return InMemoryBroker()


@pytest_asyncio.fixture
async def transport(broker):
    """Connected in-memory transport attached to the shared broker."""
    transport = InMemoryTransport(broker)
    await transport.connect()
    yield transport
    await transport.disconnect()


@pytest_asyncio.fixture
async def multiplexer(transport, mock_logger, metrics):
    """Running multiplexer over the in-memory transport."""
    multiplexer = Multiplexer(transport, logger=mock_logger, metrics=metrics)
    multiplexer.start()
    yield multiplexer
    await multiplexer.stop()


def make_messenger(broker, identity, prefix="test", **overrides):
    """Build a messenger on an in-memory broker."""
    config = MessengerConfig(
        client_identity=identity,
        channel_prefix=prefix,
        transport="memory",
        **overrides,
    )
    return Messenger(
        config,
        transport=InMemoryTransport(broker),
        logger=MagicMock(),
        metrics=InMemoryMetrics(),
    )


@pytest.fixture
def messenger_factory(broker):
    """Build unstarted messengers sharing the test broker."""

    def factory(identity, prefix="test", **overrides):
        return make_messenger(broker, identity, prefix, **overrides)

    return factory


@pytest_asyncio.fixture
async def server(broker):
    """Started messenger acting as the handler side."""
    messenger = make_messenger(broker, "server")
    await messenger.start()
    yield messenger
    await messenger.stop()


@pytest_asyncio.fixture
async def client(broker):
    """Started messenger acting as the querying side."""
    messenger = make_messenger(broker, "client")
    await messenger.start()
    yield messenger
    await messenger.stop()


@pytest.fixture(scope="session")
def nats_container():
    """Start NATS container for integration tests."""
    if os.getenv("SKIP_INTEGRATION_TESTS", "").lower() == "true":
        pytest.skip("Integration tests disabled")

    # Use existing NATS if available
    if os.getenv("NATS_URL"):
        yield os.getenv("NATS_URL")
        return

    from testcontainers.nats import NatsContainer

    container = NatsContainer("nats:2.10-alpine")
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"NATS container unavailable: {e}")

    # Wait for NATS to be ready
    time.sleep(2)

    nats_url = f"nats://localhost:{container.get_exposed_port(4222)}"
    yield nats_url

    container.stop()
