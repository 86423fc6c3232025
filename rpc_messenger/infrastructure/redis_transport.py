"""Redis transport - Redis PUBLISH/SUBSCRIBE used as broadcast channels."""

import asyncio
import contextlib
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from ..domain.exceptions import TransportError
from ..ports.logger import LoggerPort
from ..ports.transport import InboundMessage, TransportPort
from .simple_logger import SimpleLogger


class RedisTransport(TransportPort):
    """Redis implementation of the transport port.

    A connection in subscribe mode cannot issue other commands, so a
    separate client is used for publishing.
    """

    poll_timeout = 1.0

    def __init__(self, options: dict[str, Any] | None = None, logger: LoggerPort | None = None):
        """Initialize the transport.

        Args:
            options: Keyword arguments for ``redis.asyncio.Redis``. A ``url``
                key is passed to ``Redis.from_url`` instead.
            logger: Optional logger for read loop failures.
        """
        self._options: dict[str, Any] = dict(options or {})
        self._logger = logger or SimpleLogger()
        self._publisher: Redis | None = None
        self._subscriber: Redis | None = None
        self._pubsub: PubSub | None = None
        self._reader: asyncio.Task | None = None
        self._connected = False
        self._inbox: asyncio.Queue[InboundMessage] = asyncio.Queue()

    def _create_client(self) -> Redis:
        options = dict(self._options)
        url = options.pop("url", None)
        if url:
            return Redis.from_url(url, **options)
        return Redis(**options)

    async def connect(self) -> None:
        """Open the publish and subscribe clients."""
        self._publisher = self._create_client()
        self._subscriber = self._create_client()
        try:
            await self._publisher.ping()
            await self._subscriber.ping()
        except RedisError as e:
            await self.disconnect()
            raise TransportError(f"Failed to connect to Redis: {e}") from e
        self._pubsub = self._subscriber.pubsub()
        self._connected = True

    async def disconnect(self) -> None:
        """Stop the reader and close both clients."""
        self._connected = False
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        if self._pubsub is not None:
            with contextlib.suppress(RedisError):
                await self._pubsub.aclose()
            self._pubsub = None
        for client in (self._subscriber, self._publisher):
            if client is not None:
                with contextlib.suppress(RedisError):
                    await client.aclose()
        self._subscriber = None
        self._publisher = None

    async def is_connected(self) -> bool:
        """Check if connected."""
        return self._connected

    async def publish(self, channel: str, data: bytes) -> None:
        """PUBLISH on the publish client."""
        if not self._connected or self._publisher is None:
            raise TransportError("Not connected to Redis", channel=channel)
        try:
            await self._publisher.publish(channel, data)
        except RedisError as e:
            raise TransportError(f"Redis publish failed: {e}", channel=channel) from e

    async def subscribe(self, channel: str) -> None:
        """SUBSCRIBE on the subscribe client and start the reader."""
        if not self._connected or self._pubsub is None:
            raise TransportError("Not connected to Redis", channel=channel)
        try:
            await self._pubsub.subscribe(channel)
        except RedisError as e:
            raise TransportError(f"Redis subscribe failed: {e}", channel=channel) from e
        # get_message() needs at least one subscription before it can be polled.
        if self._reader is None:
            self._reader = asyncio.create_task(self._read_loop())

    async def unsubscribe(self, channel: str) -> None:
        """UNSUBSCRIBE a channel."""
        if self._pubsub is None:
            return
        try:
            await self._pubsub.unsubscribe(channel)
        except RedisError as e:
            raise TransportError(f"Redis unsubscribe failed: {e}", channel=channel) from e

    async def receive(self) -> InboundMessage:
        """Wait for the next published message."""
        return await self._inbox.get()

    async def _read_loop(self) -> None:
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self.poll_timeout
                )
                if message is None or message.get("type") != "message":
                    continue
                inbound = self._to_inbound(message)
            except RedisError as e:
                self._logger.warning("Redis subscribe connection error", error=str(e))
                await asyncio.sleep(self.poll_timeout)
                continue
            except Exception as e:
                self._logger.exception("Redis read loop error", exc_info=e)
                await asyncio.sleep(self.poll_timeout)
                continue
            self._inbox.put_nowait(inbound)

    @staticmethod
    def _to_inbound(message: dict[str, Any]) -> InboundMessage:
        channel = message["channel"]
        if isinstance(channel, bytes):
            channel = channel.decode()
        data = message["data"]
        if isinstance(data, str):
            data = data.encode()
        return InboundMessage(channel=channel, data=data)
