"""In-memory transport for tests and single-process deployments.

Several transports attached to one ``InMemoryBroker`` behave like separate
processes sharing a broker: a publish is delivered to every transport that
subscribed to the channel, and to nobody else.
"""

import asyncio

from ..domain.exceptions import TransportError
from ..ports.transport import InboundMessage, TransportPort


class InMemoryBroker:
    """Process-local fire-and-forget broadcast broker."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list["InMemoryTransport"]] = {}

    def attach(self, channel: str, transport: "InMemoryTransport") -> None:
        """Subscribe a transport to a channel."""
        subscribers = self._subscribers.setdefault(channel, [])
        if transport not in subscribers:
            subscribers.append(transport)

    def detach(self, channel: str, transport: "InMemoryTransport") -> None:
        """Unsubscribe a transport from a channel."""
        subscribers = self._subscribers.get(channel, [])
        if transport in subscribers:
            subscribers.remove(transport)
        if not subscribers:
            self._subscribers.pop(channel, None)

    def detach_all(self, transport: "InMemoryTransport") -> None:
        """Remove every subscription held by a transport."""
        for channel in list(self._subscribers):
            self.detach(channel, transport)

    def deliver(self, channel: str, data: bytes) -> int:
        """Broadcast data to every subscriber; returns the receiver count."""
        subscribers = list(self._subscribers.get(channel, []))
        for transport in subscribers:
            transport._enqueue(InboundMessage(channel=channel, data=data))
        return len(subscribers)

    def subscriber_count(self, channel: str) -> int:
        """Number of transports subscribed to a channel."""
        return len(self._subscribers.get(channel, []))


class InMemoryTransport(TransportPort):
    """Transport adapter backed by an ``InMemoryBroker``."""

    def __init__(self, broker: InMemoryBroker | None = None) -> None:
        self.broker = broker or InMemoryBroker()
        self._connected = False
        self._channels: set[str] = set()
        self._inbox: asyncio.Queue[InboundMessage] = asyncio.Queue()

    async def connect(self) -> None:
        """Mark the transport connected."""
        self._connected = True

    async def disconnect(self) -> None:
        """Drop all subscriptions and mark the transport disconnected."""
        self.broker.detach_all(self)
        self._channels.clear()
        self._connected = False

    async def is_connected(self) -> bool:
        """Check if connected."""
        return self._connected

    async def publish(self, channel: str, data: bytes) -> None:
        """Broadcast data through the broker."""
        if not self._connected:
            raise TransportError("In-memory transport is not connected", channel=channel)
        self.broker.deliver(channel, bytes(data))

    async def subscribe(self, channel: str) -> None:
        """Attach this transport to a broker channel."""
        if not self._connected:
            raise TransportError("In-memory transport is not connected", channel=channel)
        self.broker.attach(channel, self)
        self._channels.add(channel)

    async def unsubscribe(self, channel: str) -> None:
        """Detach this transport from a broker channel."""
        self.broker.detach(channel, self)
        self._channels.discard(channel)

    async def receive(self) -> InboundMessage:
        """Wait for the next delivered message."""
        return await self._inbox.get()

    @property
    def channels(self) -> frozenset[str]:
        """Channels this transport is subscribed to."""
        return frozenset(self._channels)

    def _enqueue(self, message: InboundMessage) -> None:
        self._inbox.put_nowait(message)
