"""Tests for the Messenger context object."""

import asyncio
from unittest.mock import MagicMock

import pytest

from rpc_messenger.application.messenger import Messenger
from rpc_messenger.domain.exceptions import (
    DuplicateHandlerError,
    QueryTimeoutError,
    RemoteHandlerError,
    TransportError,
)
from rpc_messenger.infrastructure.config import MessengerConfig
from rpc_messenger.infrastructure.in_memory_transport import InMemoryTransport
from rpc_messenger.infrastructure.nats_transport import NATSTransport
from tests.helpers import eventually


class TestMessengerConstruction:
    """Test messenger wiring."""

    def test_builds_transport_from_config(self):
        """Test the configured transport is created when none is given."""
        messenger = Messenger(MessengerConfig(client_identity="a"), logger=MagicMock())
        assert isinstance(messenger.transport, NATSTransport)

    def test_uses_given_transport(self):
        """Test an explicit transport wins over the configuration."""
        transport = InMemoryTransport()
        messenger = Messenger(MessengerConfig(client_identity="a"), transport=transport)
        assert messenger.transport is transport
        assert messenger.client_identity == "a"
        assert not messenger.is_started

    def test_message_channel_cached(self, messenger_factory):
        """Test one message channel exists per logical channel."""
        messenger = messenger_factory("client", default_timeout_ms=250)
        channel = messenger.get_message_channel("echo")

        assert messenger.get_message_channel("echo") is channel
        assert messenger.get_message_channel("other") is not channel
        assert channel.request_channel == "test_echo:req"
        assert channel.response_channel == "test_echo:res_client"
        assert channel.default_timeout == 0.25


class TestMessengerLifecycle:
    """Test start and stop."""

    @pytest.mark.asyncio
    async def test_start_stop_idempotent(self, messenger_factory):
        """Test start and stop may be called repeatedly."""
        messenger = messenger_factory("a")
        await messenger.start()
        await messenger.start()
        assert messenger.is_started
        assert await messenger.transport.is_connected()

        await messenger.stop()
        await messenger.stop()
        assert not messenger.is_started
        assert not await messenger.transport.is_connected()

    @pytest.mark.asyncio
    async def test_context_manager(self, messenger_factory):
        """Test async with starts and stops the messenger."""
        messenger = messenger_factory("a")
        async with messenger as running:
            assert running is messenger
            assert messenger.is_started
        assert not messenger.is_started

    @pytest.mark.asyncio
    async def test_restart(self, messenger_factory):
        """Test a stopped messenger can start again with its handlers."""
        server = messenger_factory("server")
        client = messenger_factory("client")
        await server.register_handler("echo", lambda payload: payload)

        await server.start()
        await server.stop()
        await server.start()
        await client.start()
        try:
            assert await client.query("echo", "again", timeout=1) == "again"
        finally:
            await client.stop()
            await server.stop()

    @pytest.mark.asyncio
    async def test_stop_fails_pending_queries(self, client):
        """Test pending queries fail when the messenger stops."""
        task = asyncio.create_task(client.query("nobody", "x", timeout=5))
        channel = client.get_message_channel("nobody")
        await eventually(lambda: channel.pending_count == 1)

        await client.stop()

        with pytest.raises(TransportError, match="messenger stopped"):
            await asyncio.wait_for(task, 1)


class TestMessengerHandlers:
    """Test handler declaration."""

    @pytest.mark.asyncio
    async def test_decorator_binds_at_start(self, messenger_factory, client):
        """Test decorated handlers serve once the messenger starts."""
        server = messenger_factory("server")

        @server.handler("greet")
        async def greet(payload):
            return f"hello {payload}"

        await server.start()
        try:
            assert await client.query("greet", "ada", timeout=1) == "hello ada"
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_decorator_after_start(self, server):
        """Test the decorator refuses a running messenger."""
        with pytest.raises(RuntimeError):

            @server.handler("late")
            def late(payload):
                return payload

    def test_decorator_duplicate(self, messenger_factory):
        """Test two decorated handlers for one channel are rejected."""
        messenger = messenger_factory("server")
        messenger.handler("echo")(lambda payload: payload)
        with pytest.raises(DuplicateHandlerError):
            messenger.handler("echo")(lambda payload: payload)

    @pytest.mark.asyncio
    async def test_register_while_running(self, server, client):
        """Test a handler registered on a running messenger serves at once."""
        await server.register_handler("echo", lambda payload: payload)
        assert await client.query("echo", [1, 2], timeout=1) == [1, 2]

    @pytest.mark.asyncio
    async def test_duplicate_handler_keeps_first(self, server, client):
        """Test a second registration fails and the first still answers."""
        await server.register_handler("echo", lambda payload: "first")

        with pytest.raises(DuplicateHandlerError):
            await server.register_handler("echo", lambda payload: "second")

        assert await client.query("echo", None, timeout=1) == "first"

    @pytest.mark.asyncio
    async def test_unregister(self, server, client):
        """Test an unregistered channel stops answering."""
        await server.register_handler("echo", lambda payload: payload)

        assert await server.unregister_handler("echo") is True
        assert await server.unregister_handler("echo") is False

        with pytest.raises(QueryTimeoutError):
            await client.query("echo", "x", timeout=0.05)


class TestMessengerMessaging:
    """Test request/reply between two messengers sharing a broker."""

    @pytest.mark.asyncio
    async def test_echo_round_trip(self, server, client):
        """Test a query returns the handler's result for a nested payload."""
        await server.register_handler("echo", lambda payload: payload)
        payload = {"id": 1, "tags": ["a", "b"], "nested": {"ok": True, "ratio": 0.5}}

        assert await client.get_message_channel("echo").query(payload, timeout=1) == payload

    @pytest.mark.asyncio
    async def test_handler_failure_reaches_client(self, server, client):
        """Test a raising handler rejects the query with its error text."""

        def boom(payload):
            raise ValueError("boom")

        await server.register_handler("explode", boom)

        with pytest.raises(RemoteHandlerError) as exc_info:
            await client.query("explode", None, timeout=1)
        assert exc_info.value.error_text == "boom"

    @pytest.mark.asyncio
    async def test_timeout_bounds(self, client):
        """Test a query nobody answers fails close to its timeout."""
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(QueryTimeoutError):
            await client.query("nobody", "x", timeout=0.1)

        assert 0.09 <= loop.time() - started < 0.6

    @pytest.mark.asyncio
    async def test_concurrent_queries_out_of_order(self, server, client):
        """Test concurrent queries each get their own result."""

        async def delayed(payload):
            await asyncio.sleep(payload["delay"])
            return payload["id"]

        # Separate channels so the handlers run concurrently and finish in reverse order.
        await server.register_handler("slow", delayed)
        await server.register_handler("fast", delayed)

        slow, fast = await asyncio.gather(
            client.query("slow", {"id": "s", "delay": 0.1}, timeout=1),
            client.query("fast", {"id": "f", "delay": 0}, timeout=1),
        )

        assert (slow, fast) == ("s", "f")

    @pytest.mark.asyncio
    async def test_many_queries_one_channel(self, server, client):
        """Test many concurrent queries on one channel are matched correctly."""
        await server.register_handler("square", lambda payload: payload * payload)

        results = await asyncio.gather(*(client.query("square", i, timeout=2) for i in range(20)))

        assert results == [i * i for i in range(20)]

    @pytest.mark.asyncio
    async def test_send_reaches_handler_without_waiting(self, server, client):
        """Test send delivers the payload and returns before the handler finishes."""
        received = []
        release = asyncio.Event()

        async def record(payload):
            received.append(payload)
            await release.wait()

        await server.register_handler("audit", record)

        await asyncio.wait_for(client.send("audit", {"event": "login"}), 0.5)

        await eventually(lambda: received == [{"event": "login"}])
        release.set()
        assert client.get_message_channel("audit").pending_count == 0

    @pytest.mark.asyncio
    async def test_late_response_after_timeout(self, server, client):
        """Test a response arriving after the timeout is ignored."""

        async def slow(payload):
            await asyncio.sleep(0.15)
            return payload

        await server.register_handler("slow", slow)

        with pytest.raises(QueryTimeoutError):
            await client.query("slow", "first", timeout=0.05)

        await eventually(lambda: client.metrics.counter("query.late_response") == 1)
        assert await client.query("slow", "second", timeout=1) == "second"

    @pytest.mark.asyncio
    async def test_prefixes_isolate(self, messenger_factory):
        """Test messengers with different prefixes do not see each other."""
        server = messenger_factory("server", prefix="blue")
        client = messenger_factory("client", prefix="green")
        await server.register_handler("echo", lambda payload: payload)

        async with server, client:
            with pytest.raises(QueryTimeoutError):
                await client.query("echo", "x", timeout=0.05)

    @pytest.mark.asyncio
    async def test_msgpack_peer_interoperates(self, messenger_factory):
        """Test a msgpack client can talk to a JSON server."""
        server = messenger_factory("server")
        client = messenger_factory("client", use_msgpack=True)
        await server.register_handler("echo", lambda payload: {"got": payload})

        async with server, client:
            assert await client.query("echo", "hi", timeout=1) == {"got": "hi"}
