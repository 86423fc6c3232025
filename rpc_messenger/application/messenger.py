"""Messenger - the context object tying transport, channels and handlers together."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..domain.exceptions import DuplicateHandlerError
from ..domain.value_objects import ChannelName
from ..infrastructure.factories import SerializationFactory, TransportFactory
from ..infrastructure.in_memory_metrics import InMemoryMetrics
from ..infrastructure.simple_logger import SimpleLogger
from .dispatcher import Dispatcher
from .message_channel import MessageChannel
from .multiplexer import Multiplexer

if TYPE_CHECKING:
    from ..domain.types import RequestHandler
    from ..infrastructure.config import MessengerConfig
    from ..ports.logger import LoggerPort
    from ..ports.metrics import MetricsPort
    from ..ports.transport import TransportPort


class Messenger:
    """Request/reply messaging over a publish/subscribe broker.

    One messenger owns one transport (a publish connection and a subscribe
    connection), one multiplexer, one dispatcher and at most one message
    channel per logical channel name.

    Example:
        config = MessengerConfig(client_identity="billing", channel_prefix="prod")
        messenger = Messenger(config)

        @messenger.handler("echo")
        async def echo(payload):
            return payload

        async with messenger:
            reply = await messenger.get_message_channel("echo").query({"text": "hi"})
    """

    def __init__(
        self,
        config: MessengerConfig,
        transport: TransportPort | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or SimpleLogger()
        self._metrics = metrics or InMemoryMetrics()
        self._transport = transport or TransportFactory.create_transport(
            config, logger=self._logger
        )
        self._multiplexer = Multiplexer(
            self._transport,
            SerializationFactory.create_serializer(config.use_msgpack),
            logger=self._logger,
            metrics=self._metrics,
        )
        self._dispatcher = Dispatcher(
            self._multiplexer,
            channel_prefix=config.channel_prefix,
            logger=self._logger,
            metrics=self._metrics,
        )
        self._handlers: dict[str, RequestHandler] = {}
        self._channels: dict[str, MessageChannel] = {}
        self._started = False

    @property
    def config(self) -> MessengerConfig:
        return self._config

    @property
    def client_identity(self) -> str:
        return self._config.client_identity

    @property
    def transport(self) -> TransportPort:
        return self._transport

    @property
    def multiplexer(self) -> Multiplexer:
        return self._multiplexer

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def metrics(self) -> MetricsPort:
        return self._metrics

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Connect the transport and bind every declared handler."""
        if self._started:
            return

        await self._transport.connect()
        self._multiplexer.start()
        self._started = True

        try:
            for name, handler in self._handlers.items():
                await self._dispatcher.register_handler(name, handler)
        except Exception:
            await self.stop()
            raise

        self._logger.info(
            "Messenger started",
            client_identity=self.client_identity,
            channel_prefix=self._config.channel_prefix,
            handlers=list(self._handlers),
        )

    async def stop(self) -> None:
        """Stop handlers, fail pending queries and disconnect."""
        if not self._started:
            return
        self._started = False

        await self._dispatcher.stop()
        for channel in self._channels.values():
            await channel.close("messenger stopped")
        self._channels.clear()
        await self._multiplexer.stop()
        await self._transport.disconnect()

        self._logger.info("Messenger stopped", client_identity=self.client_identity)

    async def __aenter__(self) -> Messenger:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def handler(self, channel_name: str) -> Callable[[RequestHandler], RequestHandler]:
        """Decorator declaring the handler of a logical channel.

        The handler is bound when the messenger starts. Use
        :meth:`register_handler` to add handlers to a running messenger.
        """

        def decorator(func: RequestHandler) -> RequestHandler:
            if self._started:
                raise RuntimeError(
                    "Messenger already started; use 'await register_handler()' instead"
                )
            name = str(ChannelName(value=channel_name))
            if name in self._handlers:
                raise DuplicateHandlerError(name)
            self._handlers[name] = func
            return func

        return decorator

    async def register_handler(self, channel_name: str, handler: RequestHandler) -> None:
        """Declare a handler, binding it at once if the messenger is running.

        Raises:
            DuplicateHandlerError: If the logical channel already has a handler
            TransportError: If the messenger is running and subscribing failed
        """
        name = str(ChannelName(value=channel_name))
        if name in self._handlers:
            raise DuplicateHandlerError(name)
        if self._started:
            await self._dispatcher.register_handler(name, handler)
        self._handlers[name] = handler

    async def unregister_handler(self, channel_name: str) -> bool:
        """Remove a handler; False if none was declared for the channel."""
        if self._handlers.pop(channel_name, None) is None:
            return False
        if self._started:
            await self._dispatcher.unregister_handler(channel_name)
        return True

    def get_message_channel(self, channel_name: str) -> MessageChannel:
        """Return this messenger's message channel for a logical channel.

        Repeated calls with the same name return the same channel.
        """
        name = str(ChannelName(value=channel_name))
        channel = self._channels.get(name)
        if channel is None:
            channel = MessageChannel(
                self._multiplexer,
                name,
                self._config.client_identity,
                channel_prefix=self._config.channel_prefix,
                default_timeout=self._config.default_timeout,
                logger=self._logger,
                metrics=self._metrics,
            )
            self._channels[name] = channel
        return channel

    async def send(self, channel_name: str, payload: Any = None) -> None:
        """Shortcut for ``get_message_channel(channel_name).send(payload)``."""
        await self.get_message_channel(channel_name).send(payload)

    async def query(
        self, channel_name: str, payload: Any = None, timeout: float | None = None
    ) -> Any:
        """Shortcut for ``get_message_channel(channel_name).query(payload, timeout)``."""
        return await self.get_message_channel(channel_name).query(payload, timeout=timeout)
