"""Domain layer - Envelopes, channel naming and errors."""

from .exceptions import (
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
from .models import (
    Decoded,
    DecodeFailure,
    DecodeResult,
    Envelope,
    RequestEnvelope,
    ResponseEnvelope,
)
from .patterns import ChannelPatterns
from .types import EnvelopeCallback, RequestHandler
from .value_objects import ChannelName, ClientIdentity

__all__ = [
    "ChannelConflictError",
    "ChannelName",
    "ChannelPatterns",
    "ClientIdentity",
    "DecodeFailure",
    "DecodeResult",
    "Decoded",
    "DuplicateHandler",
    "DuplicateHandlerError",
    "DuplicateSubscription",
    "DuplicateSubscriptionError",
    "Envelope",
    "EnvelopeCallback",
    "MessengerError",
    "QueryTimeout",
    "QueryTimeoutError",
    "RemoteHandlerError",
    "RequestEnvelope",
    "RequestHandler",
    "ResponseEnvelope",
    "SerializationError",
    "TransportError",
]
