"""Factories turning configuration into serializers and transports."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, Protocol

from ..domain.models import Envelope
from .serialization import serialize_to_json, serialize_to_msgpack

if TYPE_CHECKING:
    from ..ports.logger import LoggerPort
    from ..ports.transport import TransportPort
    from .config import MessengerConfig


class Serializer(Protocol):
    """Encodes outbound envelopes."""

    name: str

    def serialize(self, envelope: Envelope) -> bytes: ...


class JSONSerializer:
    """JSON text, readable by every other peer on the broker."""

    name: ClassVar[str] = "json"

    def serialize(self, envelope: Envelope) -> bytes:
        return serialize_to_json(envelope)


class MessagePackSerializer:
    """MessagePack maps with the same field names as the JSON form."""

    name: ClassVar[str] = "msgpack"

    def serialize(self, envelope: Envelope) -> bytes:
        return serialize_to_msgpack(envelope)


class SerializationFactory:
    """Builds the outbound serializer selected by ``use_msgpack``.

    Inbound decoding always auto-detects, so peers using different
    encodings can share a channel.
    """

    @staticmethod
    def create_serializer(use_msgpack: bool = False) -> Serializer:
        return MessagePackSerializer() if use_msgpack else JSONSerializer()


class TransportFactory:
    """Factory building the transport adapter named by the configuration."""

    @staticmethod
    def create_transport(
        config: MessengerConfig, logger: LoggerPort | None = None
    ) -> TransportPort:
        """Create a transport for ``config.transport``.

        ``config.transport_options`` is passed through untouched. Broker
        client libraries are imported only when their transport is chosen.
        """
        if config.transport == "nats":
            from .nats_transport import NATSTransport

            return NATSTransport(config.transport_options)
        if config.transport == "redis":
            from .redis_transport import RedisTransport

            return RedisTransport(config.transport_options, logger=logger)
        if config.transport == "memory":
            from .in_memory_transport import InMemoryTransport

            return InMemoryTransport()
        raise ValueError(f"Unknown transport: {config.transport}")
