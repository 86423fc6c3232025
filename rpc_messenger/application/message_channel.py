"""Message channel - client side of one logical channel."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..domain.exceptions import (
    QueryTimeoutError,
    RemoteHandlerError,
    TransportError,
)
from ..domain.models import RequestEnvelope, ResponseEnvelope
from ..domain.patterns import ChannelPatterns
from ..domain.value_objects import ChannelName, ClientIdentity
from ..infrastructure.config import LogContext
from ..infrastructure.in_memory_metrics import InMemoryMetrics
from ..infrastructure.simple_logger import SimpleLogger

if TYPE_CHECKING:
    from ..ports.logger import LoggerPort
    from ..ports.metrics import MetricsPort
    from .multiplexer import Multiplexer


@dataclass
class PendingQuery:
    """An outstanding query waiting for its response or its timer."""

    correlation_id: str
    future: asyncio.Future
    timer: asyncio.TimerHandle | None = None

    def resolve(self, payload: Any) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_result(payload)

    def reject(self, error: Exception) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_exception(error)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class MessageChannel:
    """Client endpoint for sending to and querying one logical channel.

    Requests go to ``<prefix_><name>:req``; responses for this client come
    back on ``<prefix_><name>:res_<identity>``. The response channel is
    subscribed lazily on the first query and kept for the channel's
    lifetime. Each query is settled exactly once, by its response, its
    timeout, a transport failure or :meth:`close`.
    """

    def __init__(
        self,
        multiplexer: Multiplexer,
        channel_name: str,
        client_identity: str,
        channel_prefix: str | None = None,
        default_timeout: float = 5.0,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        """Create a message channel and claim its response channel.

        Raises:
            ValueError: If the channel name, identity or timeout is invalid
            ChannelConflictError: If another message channel on the same
                multiplexer already owns the response channel
        """
        if default_timeout <= 0:
            raise ValueError(f"default_timeout must be positive, got {default_timeout}")

        self.channel_name = str(ChannelName(value=channel_name))
        self.client_identity = str(ClientIdentity(value=client_identity))
        self.default_timeout = default_timeout

        namespace = ChannelPatterns.namespace_prefix(channel_prefix)
        self.request_channel = ChannelPatterns.request(namespace, self.channel_name)
        self.response_channel = ChannelPatterns.response(
            namespace, self.channel_name, self.client_identity
        )

        self._multiplexer = multiplexer
        self._logger = logger or SimpleLogger()
        self._metrics = metrics or InMemoryMetrics()
        self._pending: dict[str, PendingQuery] = {}
        self._subscribed = False
        self._subscribe_lock = asyncio.Lock()
        self._closed = False
        self._log_context = LogContext(
            component="message_channel",
            client_identity=self.client_identity,
            channel_name=self.channel_name,
            channel=self.request_channel,
        )

        multiplexer.reserve(self.response_channel)

    @property
    def pending_count(self) -> int:
        """Number of queries still waiting for a response."""
        return len(self._pending)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def send(self, payload: Any = None) -> None:
        """Publish a request without waiting for any response.

        Any reply a handler produces for it is dropped by this client.

        Raises:
            TransportError: If the publish failed
        """
        self._check_open()
        request = RequestEnvelope.new(self.client_identity, payload)
        await self._multiplexer.publish(self.request_channel, request)
        self._metrics.increment("send.success")

    async def query(self, payload: Any = None, timeout: float | None = None) -> Any:
        """Publish a request and wait for the matching response payload.

        Args:
            payload: Request payload
            timeout: Seconds to wait, defaults to the channel's default timeout

        Returns:
            The payload returned by the remote handler

        Raises:
            QueryTimeoutError: If no response arrived in time
            RemoteHandlerError: If the remote handler failed
            TransportError: If subscribing or publishing failed
        """
        self._check_open()
        if timeout is None:
            timeout = self.default_timeout
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        await self._ensure_subscribed()

        request = RequestEnvelope.new(self.client_identity, payload)
        loop = asyncio.get_running_loop()
        pending = PendingQuery(request.correlation_id, loop.create_future())
        self._pending[pending.correlation_id] = pending
        # Timeout is measured from before the publish.
        pending.timer = loop.call_later(timeout, self._expire, pending.correlation_id, timeout)
        self._metrics.gauge("query.pending", len(self._pending))

        try:
            await self._multiplexer.publish(self.request_channel, request)
            result = await pending.future
        except QueryTimeoutError:
            self._metrics.increment("query.timeout")
            context = self._log_context.bind(
                correlation_id=pending.correlation_id, duration_ms=timeout * 1000
            )
            self._logger.warning("Query timed out", **context.to_dict())
            raise
        except RemoteHandlerError:
            self._metrics.increment("query.error")
            raise
        except TransportError:
            self._metrics.increment("query.transport_error")
            raise
        finally:
            self._discard(pending)

        self._metrics.increment("query.success")
        return result

    async def close(self, reason: str = "Message channel closed") -> None:
        """Fail every pending query and release the response channel."""
        if self._closed:
            return
        self._closed = True

        error = TransportError(reason, channel=self.request_channel)
        for pending in list(self._pending.values()):
            pending.reject(error)
        self._pending.clear()

        try:
            if self._subscribed:
                self._subscribed = False
                await self._multiplexer.unsubscribe(self.response_channel)
        except TransportError as e:
            self._logger.warning(
                "Failed to unsubscribe response channel",
                channel=self.response_channel,
                error=str(e),
            )
        finally:
            self._multiplexer.release(self.response_channel)

    def _check_open(self) -> None:
        if self._closed:
            raise TransportError("Message channel closed", channel=self.request_channel)

    async def _ensure_subscribed(self) -> None:
        if self._subscribed:
            return
        async with self._subscribe_lock:
            if self._subscribed:
                return
            await self._multiplexer.subscribe(
                self.response_channel, self._on_response, ResponseEnvelope
            )
            self._subscribed = True

    def _expire(self, correlation_id: str, timeout: float) -> None:
        pending = self._pending.pop(correlation_id, None)
        if pending is None:
            return
        pending.timer = None
        pending.reject(QueryTimeoutError(self.channel_name, timeout, correlation_id))

    def _discard(self, pending: PendingQuery) -> None:
        pending.cancel_timer()
        self._pending.pop(pending.correlation_id, None)
        self._metrics.gauge("query.pending", len(self._pending))
        if pending.future.done() and not pending.future.cancelled():
            # Mark a failure set after the caller stopped waiting as retrieved.
            pending.future.exception()
        else:
            pending.future.cancel()

    async def _on_response(self, envelope: ResponseEnvelope) -> None:
        pending = self._pending.pop(envelope.in_reply_to, None)
        if pending is None:
            self._metrics.increment("query.late_response")
            context = self._log_context.bind(
                channel=self.response_channel, correlation_id=envelope.in_reply_to
            )
            self._logger.debug("Ignoring response without pending query", **context.to_dict())
            return

        if envelope.success:
            pending.resolve(envelope.payload)
        else:
            pending.reject(RemoteHandlerError(envelope.error_text or "", self.channel_name))
