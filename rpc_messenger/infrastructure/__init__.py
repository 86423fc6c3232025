"""Infrastructure layer - Concrete implementations of ports."""

from .config import LogContext, MessengerConfig
from .factories import (
    JSONSerializer,
    MessagePackSerializer,
    SerializationFactory,
    Serializer,
    TransportFactory,
)
from .in_memory_metrics import InMemoryMetrics
from .in_memory_transport import InMemoryBroker, InMemoryTransport
from .serialization import decode_envelope, detect_and_deserialize
from .simple_logger import SimpleLogger

__all__ = [
    "InMemoryBroker",
    "InMemoryMetrics",
    "InMemoryTransport",
    "JSONSerializer",
    "LogContext",
    "MessagePackSerializer",
    "MessengerConfig",
    "SerializationFactory",
    "Serializer",
    "SimpleLogger",
    "TransportFactory",
    "decode_envelope",
    "detect_and_deserialize",
]
