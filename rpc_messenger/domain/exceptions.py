"""Domain-specific exceptions for request/reply messaging."""


class MessengerError(Exception):
    """Base exception for all messenger errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(MessengerError):
    """Publish or subscribe failed at the transport adapter level."""

    def __init__(self, message: str, channel: str | None = None):
        super().__init__(message)
        self.channel = channel
        if channel:
            self.details["channel"] = channel


class SerializationError(MessengerError):
    """Envelope serialization/deserialization errors."""

    pass


class DuplicateSubscriptionError(MessengerError):
    """Raised when a broker channel already has a registered callback."""

    def __init__(self, channel: str):
        super().__init__(
            f"Channel '{channel}' already has a subscriber",
            details={"channel": channel},
        )
        self.channel = channel


class DuplicateHandlerError(MessengerError):
    """Raised when a handler is already registered for a logical channel."""

    def __init__(self, channel_name: str):
        super().__init__(
            f"A handler is already registered for channel '{channel_name}'",
            details={"channel_name": channel_name},
        )
        self.channel_name = channel_name


class ChannelConflictError(MessengerError):
    """Raised when two message channels would share one response channel."""

    def __init__(self, channel: str):
        super().__init__(
            f"Response channel '{channel}' is already owned by another message channel",
            details={"channel": channel},
        )
        self.channel = channel


class QueryTimeoutError(MessengerError):
    """No response arrived within the query timeout."""

    def __init__(self, channel_name: str, timeout: float, correlation_id: str | None = None):
        super().__init__(
            f"Query on channel '{channel_name}' timed out after {timeout:.3f}s",
            details={"channel_name": channel_name, "timeout": timeout},
        )
        self.channel_name = channel_name
        self.timeout = timeout
        self.correlation_id = correlation_id
        if correlation_id:
            self.details["correlation_id"] = correlation_id


class RemoteHandlerError(MessengerError):
    """The remote handler raised; only its error text crosses the wire."""

    def __init__(self, error_text: str, channel_name: str | None = None):
        super().__init__(error_text)
        self.error_text = error_text
        self.channel_name = channel_name
        if channel_name:
            self.details["channel_name"] = channel_name


# Short names used throughout the protocol documentation.
DuplicateSubscription = DuplicateSubscriptionError
DuplicateHandler = DuplicateHandlerError
QueryTimeout = QueryTimeoutError
