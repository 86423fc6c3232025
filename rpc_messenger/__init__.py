"""
rpc-messenger - Request/reply messaging over publish/subscribe brokers.

Logical channels carry requests to a single handler and route each
response back to the querying client's private response channel.
Transports are pluggable: NATS, Redis and an in-process broker.
"""

__version__ = "0.1.0"

from .application.dispatcher import Dispatcher
from .application.message_channel import MessageChannel
from .application.messenger import Messenger
from .application.multiplexer import Multiplexer
from .domain.exceptions import (
    ChannelConflictError,
    DuplicateHandler,
    DuplicateHandlerError,
    DuplicateSubscription,
    DuplicateSubscriptionError,
    MessengerError,
    QueryTimeout,
    QueryTimeoutError,
    RemoteHandlerError,
    SerializationError,
    TransportError,
)
from .domain.models import RequestEnvelope, ResponseEnvelope
from .domain.patterns import ChannelPatterns
from .infrastructure.config import MessengerConfig

__all__ = [
    "ChannelConflictError",
    "ChannelPatterns",
    "Dispatcher",
    "DuplicateHandler",
    "DuplicateHandlerError",
    "DuplicateSubscription",
    "DuplicateSubscriptionError",
    "MessageChannel",
    "Messenger",
    "MessengerConfig",
    "MessengerError",
    "Multiplexer",
    "QueryTimeout",
    "QueryTimeoutError",
    "RemoteHandlerError",
    "RequestEnvelope",
    "ResponseEnvelope",
    "SerializationError",
    "TransportError",
]
