"""NATS transport - core NATS subjects used as broadcast channels."""

import asyncio
import contextlib
from typing import Any

import nats
from nats.aio.client import Client as NATSClient
from nats.aio.msg import Msg
from nats.aio.subscription import Subscription

from ..domain.exceptions import TransportError
from ..ports.transport import InboundMessage, TransportPort

DEFAULT_SERVERS = ["nats://localhost:4222"]


class NATSTransport(TransportPort):
    """NATS implementation of the transport port.

    Two connections are opened: one only publishes, one only subscribes.
    Core NATS delivery is at-most-once and fire-and-forget, which is all the
    request/reply layer needs.
    """

    def __init__(self, options: dict[str, Any] | None = None):
        """Initialize the transport.

        Args:
            options: Keyword arguments passed through to ``nats.connect``.
                ``servers`` defaults to the local server.
        """
        self._options: dict[str, Any] = {"servers": DEFAULT_SERVERS, **(options or {})}
        self._publisher: NATSClient | None = None
        self._subscriber: NATSClient | None = None
        self._subscriptions: dict[str, Subscription] = {}
        self._inbox: asyncio.Queue[InboundMessage] = asyncio.Queue()

    async def connect(self) -> None:
        """Open the publish and subscribe connections."""
        try:
            self._publisher = await nats.connect(**self._options)
            self._subscriber = await nats.connect(**self._options)
        except Exception as e:
            await self.disconnect()
            raise TransportError(f"Failed to connect to NATS: {e}") from e

    async def disconnect(self) -> None:
        """Close both connections."""
        for subscription in self._subscriptions.values():
            with contextlib.suppress(Exception):
                await subscription.unsubscribe()
        self._subscriptions.clear()

        for nc in (self._publisher, self._subscriber):
            if nc is not None and not nc.is_closed:
                await nc.close()
        self._publisher = None
        self._subscriber = None

    async def is_connected(self) -> bool:
        """Check if both connections are up."""
        return all(nc is not None and nc.is_connected for nc in (self._publisher, self._subscriber))

    async def publish(self, channel: str, data: bytes) -> None:
        """Publish on the publish connection."""
        nc = self._publisher
        if nc is None or not nc.is_connected:
            raise TransportError("Not connected to NATS", channel=channel)
        try:
            await nc.publish(channel, data)
        except Exception as e:
            raise TransportError(f"NATS publish failed: {e}", channel=channel) from e

    async def subscribe(self, channel: str) -> None:
        """Subscribe on the subscribe connection."""
        nc = self._subscriber
        if nc is None or not nc.is_connected:
            raise TransportError("Not connected to NATS", channel=channel)
        if channel in self._subscriptions:
            return

        async def on_message(msg: Msg) -> None:
            self._inbox.put_nowait(InboundMessage(channel=msg.subject, data=msg.data))

        try:
            self._subscriptions[channel] = await nc.subscribe(channel, cb=on_message)
            # Interest must be known to the server before a reply can be published.
            await nc.flush()
        except Exception as e:
            self._subscriptions.pop(channel, None)
            raise TransportError(f"NATS subscribe failed: {e}", channel=channel) from e

    async def unsubscribe(self, channel: str) -> None:
        """Drop the subscription for a channel."""
        subscription = self._subscriptions.pop(channel, None)
        if subscription is None:
            return
        try:
            await subscription.unsubscribe()
        except Exception as e:
            raise TransportError(f"NATS unsubscribe failed: {e}", channel=channel) from e

    async def receive(self) -> InboundMessage:
        """Wait for the next message delivered to any subscription."""
        return await self._inbox.get()
