"""Multiplexer - one inbound message stream, one callback per broker channel."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.exceptions import (
    ChannelConflictError,
    DuplicateSubscriptionError,
    TransportError,
)
from ..domain.models import DecodeFailure, Envelope
from ..domain.types import EnvelopeCallback
from ..infrastructure.factories import SerializationFactory
from ..infrastructure.in_memory_metrics import InMemoryMetrics
from ..infrastructure.serialization import decode_envelope
from ..infrastructure.simple_logger import SimpleLogger

if TYPE_CHECKING:
    from ..infrastructure.factories import Serializer
    from ..ports.logger import LoggerPort
    from ..ports.metrics import MetricsPort
    from ..ports.transport import InboundMessage, TransportPort


@dataclass(frozen=True)
class ChannelRegistration:
    """The callback and expected envelope type of one broker channel."""

    callback: EnvelopeCallback
    envelope_type: type[Envelope]


class Multiplexer:
    """Demultiplexes the subscribe connection's inbound stream by channel name.

    A single delivery task reads the transport and awaits the callback
    registered for each message's channel, in broker order. Callbacks share
    that task, so they must return quickly and hand longer work off to their
    own tasks.
    """

    error_backoff = 0.1

    def __init__(
        self,
        transport: TransportPort,
        serializer: Serializer | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        self._transport = transport
        self._serializer = serializer or SerializationFactory.create_serializer()
        self._logger = logger or SimpleLogger()
        self._metrics = metrics or InMemoryMetrics()
        self._registrations: dict[str, ChannelRegistration] = {}
        self._reserved: set[str] = set()
        self._delivery_task: asyncio.Task | None = None

    @property
    def transport(self) -> TransportPort:
        """The transport this multiplexer reads from and publishes to."""
        return self._transport

    @property
    def is_running(self) -> bool:
        """Whether the delivery task is active."""
        return self._delivery_task is not None and not self._delivery_task.done()

    @property
    def channels(self) -> list[str]:
        """Broker channels that currently have a callback."""
        return list(self._registrations)

    def start(self) -> None:
        """Start the delivery task on the running event loop."""
        if self.is_running:
            return
        self._delivery_task = asyncio.create_task(
            self._delivery_loop(), name="multiplexer-delivery"
        )

    async def stop(self) -> None:
        """Stop the delivery task."""
        if self._delivery_task is None:
            return
        self._delivery_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._delivery_task
        self._delivery_task = None

    def reserve(self, channel: str) -> None:
        """Claim exclusive future ownership of a broker channel.

        Raises:
            ChannelConflictError: If the channel is already claimed or registered
        """
        if channel in self._reserved or channel in self._registrations:
            raise ChannelConflictError(channel)
        self._reserved.add(channel)

    def release(self, channel: str) -> None:
        """Give up a claim made with :meth:`reserve`."""
        self._reserved.discard(channel)

    def is_registered(self, channel: str) -> bool:
        """Check whether a callback is registered for a broker channel."""
        return channel in self._registrations

    async def subscribe(
        self, channel: str, callback: EnvelopeCallback, envelope_type: type[Envelope]
    ) -> None:
        """Register the callback for a broker channel and subscribe to it.

        Raises:
            DuplicateSubscriptionError: If the channel already has a callback
            TransportError: If the transport could not subscribe
        """
        if channel in self._registrations:
            raise DuplicateSubscriptionError(channel)
        self._registrations[channel] = ChannelRegistration(callback, envelope_type)

        try:
            await self._transport.subscribe(channel)
        except TransportError:
            self._registrations.pop(channel, None)
            raise
        except Exception as e:
            self._registrations.pop(channel, None)
            raise TransportError(f"Subscribe failed: {e}", channel=channel) from e

        self._logger.debug("Subscribed to channel", channel=channel)

    async def unsubscribe(self, channel: str) -> bool:
        """Remove a channel's callback and unsubscribe from it."""
        if self._registrations.pop(channel, None) is None:
            return False
        try:
            await self._transport.unsubscribe(channel)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Unsubscribe failed: {e}", channel=channel) from e
        return True

    async def publish(self, channel: str, envelope: Envelope) -> None:
        """Serialize an envelope and publish it.

        Raises:
            SerializationError: If the envelope payload cannot be encoded
            TransportError: If the transport rejected the publish
        """
        data = self._serializer.serialize(envelope)
        try:
            await self._transport.publish(channel, data)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Publish failed: {e}", channel=channel) from e

    async def deliver(self, message: InboundMessage) -> None:
        """Route one inbound message to its channel's callback.

        Nothing raised here reaches the delivery loop: a message for an
        unknown channel, an undecodable message or a failing callback is
        logged and dropped.
        """
        registration = self._registrations.get(message.channel)
        if registration is None:
            self._metrics.increment("multiplexer.dropped.unknown_channel")
            self._logger.warning("Dropping message for unknown channel", channel=message.channel)
            return

        result = decode_envelope(message.data, registration.envelope_type)
        if isinstance(result, DecodeFailure):
            self._metrics.increment("multiplexer.dropped.malformed")
            self._logger.warning(
                "Dropping malformed envelope", channel=message.channel, reason=result.reason
            )
            return

        try:
            await registration.callback(result.envelope)
        except Exception as e:
            self._metrics.increment("multiplexer.callback_errors")
            self._logger.exception("Channel callback failed", exc_info=e, channel=message.channel)

    async def _delivery_loop(self) -> None:
        while True:
            try:
                message = await self._transport.receive()
            except Exception as e:
                self._logger.exception("Transport receive failed", exc_info=e)
                await asyncio.sleep(self.error_backoff)
                continue
            await self.deliver(message)
