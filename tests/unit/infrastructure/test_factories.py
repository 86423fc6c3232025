"""Tests for infrastructure factories."""

import pytest

from rpc_messenger.domain.models import Decoded, ResponseEnvelope
from rpc_messenger.infrastructure.config import MessengerConfig
from rpc_messenger.infrastructure.factories import (
    JSONSerializer,
    MessagePackSerializer,
    SerializationFactory,
    TransportFactory,
)
from rpc_messenger.infrastructure.in_memory_transport import InMemoryTransport
from rpc_messenger.infrastructure.nats_transport import NATSTransport
from rpc_messenger.infrastructure.redis_transport import RedisTransport
from rpc_messenger.infrastructure.serialization import decode_envelope


class TestSerializationFactory:
    """Test cases for SerializationFactory."""

    def test_json_by_default(self):
        """Test JSON text is the default encoding."""
        serializer = SerializationFactory.create_serializer()
        assert isinstance(serializer, JSONSerializer)
        assert serializer.name == "json"
        assert serializer.serialize(ResponseEnvelope.ok("1")).startswith(b"{")

    def test_msgpack(self):
        """Test msgpack can be selected."""
        serializer = SerializationFactory.create_serializer(use_msgpack=True)
        assert isinstance(serializer, MessagePackSerializer)
        assert serializer.name == "msgpack"

    @pytest.mark.parametrize("use_msgpack", [True, False])
    def test_output_decodes(self, use_msgpack):
        """Test each serializer writes what the inbound decoder reads back."""
        serializer = SerializationFactory.create_serializer(use_msgpack=use_msgpack)
        response = ResponseEnvelope.failure("1", "boom")
        result = decode_envelope(serializer.serialize(response), ResponseEnvelope)
        assert result == Decoded(response)


class TestTransportFactory:
    """Test cases for TransportFactory."""

    def test_memory(self):
        """Test the in-memory transport is built."""
        config = MessengerConfig(client_identity="a", transport="memory")
        assert isinstance(TransportFactory.create_transport(config), InMemoryTransport)

    def test_nats_options(self):
        """Test NATS options are passed through."""
        config = MessengerConfig(
            client_identity="a",
            transport="nats",
            transport_options={"servers": ["nats://x:4222"]},
        )
        transport = TransportFactory.create_transport(config)
        assert isinstance(transport, NATSTransport)
        assert transport._options["servers"] == ["nats://x:4222"]

    def test_redis_options(self):
        """Test Redis options are passed through."""
        config = MessengerConfig(
            client_identity="a",
            transport="redis",
            transport_options={"url": "redis://cache:6379/0"},
        )
        transport = TransportFactory.create_transport(config)
        assert isinstance(transport, RedisTransport)
        assert transport._options == {"url": "redis://cache:6379/0"}
