"""Transport port - the contract a pub/sub broker adapter must satisfy.

An adapter holds two logical connections to the broker: one used only for
publishing and one used only for subscribing, because a broker connection
in subscribe mode usually cannot issue other commands.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class InboundMessage:
    """A raw message delivered on the subscribe connection."""

    channel: str
    data: bytes


class TransportPort(ABC):
    """Abstract interface for a fire-and-forget publish/subscribe transport."""

    @abstractmethod
    async def connect(self) -> None:
        """Open both the publish and the subscribe connection."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close both connections."""
        ...

    @abstractmethod
    async def is_connected(self) -> bool:
        """Check if the transport can publish."""
        ...

    @abstractmethod
    async def publish(self, channel: str, data: bytes) -> None:
        """Publish raw bytes on a broker channel.

        Raises:
            TransportError: If the broker rejected the publish
        """
        ...

    @abstractmethod
    async def subscribe(self, channel: str) -> None:
        """Start receiving every future message published on a channel.

        Raises:
            TransportError: If the subscription could not be made
        """
        ...

    @abstractmethod
    async def unsubscribe(self, channel: str) -> None:
        """Stop receiving messages for a channel."""
        ...

    @abstractmethod
    async def receive(self) -> InboundMessage:
        """Wait for the next message on the subscribe connection.

        Messages are returned in broker delivery order. There must be a
        single consumer of this method per transport.
        """
        ...
