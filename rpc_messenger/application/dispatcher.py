"""Dispatcher - server side of logical channels."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import TYPE_CHECKING

from ..domain.exceptions import (
    DuplicateHandlerError,
    DuplicateSubscriptionError,
    SerializationError,
    TransportError,
)
from ..domain.models import RequestEnvelope, ResponseEnvelope
from ..domain.patterns import ChannelPatterns
from ..domain.value_objects import ChannelName
from ..infrastructure.config import LogContext
from ..infrastructure.in_memory_metrics import InMemoryMetrics
from ..infrastructure.simple_logger import SimpleLogger

if TYPE_CHECKING:
    from ..domain.types import RequestHandler
    from ..ports.logger import LoggerPort
    from ..ports.metrics import MetricsPort
    from .multiplexer import Multiplexer


def error_text_for(error: Exception) -> str:
    """Error text sent back to the querying client for a failed handler."""
    return str(error) or type(error).__name__


class HandlerWorker:
    """Serial request queue for one logical channel's handler."""

    def __init__(self, channel_name: str, request_channel: str, handler: RequestHandler):
        self.channel_name = channel_name
        self.request_channel = request_channel
        self.handler = handler
        self.log_context = LogContext(
            component="dispatcher", channel_name=channel_name, channel=request_channel
        )
        self.queue: asyncio.Queue[RequestEnvelope] = asyncio.Queue()
        self.task: asyncio.Task | None = None

    async def enqueue(self, request: RequestEnvelope) -> None:
        self.queue.put_nowait(request)

    async def cancel(self) -> None:
        if self.task is None:
            return
        self.task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self.task
        self.task = None


class Dispatcher:
    """Binds request handlers to logical channels and answers their requests.

    Every request decoded on ``<prefix_><name>:req`` is handed to the
    handler registered for ``name`` and answered with exactly one response
    on the requester's response channel. Requests on one logical channel
    are handled one at a time in arrival order; different logical channels
    are handled concurrently.
    """

    def __init__(
        self,
        multiplexer: Multiplexer,
        channel_prefix: str | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        self._multiplexer = multiplexer
        self._namespace = ChannelPatterns.namespace_prefix(channel_prefix)
        self._logger = logger or SimpleLogger()
        self._metrics = metrics or InMemoryMetrics()
        self._workers: dict[str, HandlerWorker] = {}

    @property
    def handlers(self) -> list[str]:
        """Logical channel names with a registered handler."""
        return list(self._workers)

    def has_handler(self, channel_name: str) -> bool:
        return channel_name in self._workers

    async def register_handler(self, channel_name: str, handler: RequestHandler) -> None:
        """Bind a handler to a logical channel.

        Args:
            channel_name: Logical channel name
            handler: Plain or coroutine function taking the request payload

        Raises:
            DuplicateHandlerError: If the channel already has a handler
            TransportError: If subscribing to the request channel failed
        """
        name = str(ChannelName(value=channel_name))
        if not callable(handler):
            raise TypeError(f"Handler for channel '{name}' must be callable")
        if name in self._workers:
            raise DuplicateHandlerError(name)

        worker = HandlerWorker(name, ChannelPatterns.request(self._namespace, name), handler)
        self._workers[name] = worker
        try:
            await self._multiplexer.subscribe(
                worker.request_channel, worker.enqueue, RequestEnvelope
            )
        except DuplicateSubscriptionError as e:
            self._workers.pop(name, None)
            raise DuplicateHandlerError(name) from e
        except Exception:
            self._workers.pop(name, None)
            raise

        worker.task = asyncio.create_task(self._run(worker), name=f"dispatch-{name}")
        self._logger.info("Registered handler", **worker.log_context.to_dict())

    async def unregister_handler(self, channel_name: str) -> bool:
        """Remove a logical channel's handler; False if none was registered."""
        worker = self._workers.pop(channel_name, None)
        if worker is None:
            return False
        try:
            await self._multiplexer.unsubscribe(worker.request_channel)
        finally:
            await worker.cancel()
        self._logger.info("Unregistered handler", channel_name=channel_name)
        return True

    async def stop(self) -> None:
        """Stop all workers and unsubscribe their request channels."""
        workers = list(self._workers.values())
        self._workers.clear()
        for worker in workers:
            try:
                await self._multiplexer.unsubscribe(worker.request_channel)
            except TransportError as e:
                self._logger.warning(
                    "Failed to unsubscribe request channel",
                    channel=worker.request_channel,
                    error=str(e),
                )
            await worker.cancel()

    async def _run(self, worker: HandlerWorker) -> None:
        while True:
            request = await worker.queue.get()
            try:
                await self.handle_request(worker, request)
            except Exception as e:
                self._logger.exception(
                    "Unexpected dispatch failure", exc_info=e, **worker.log_context.to_dict()
                )
            finally:
                worker.queue.task_done()

    async def handle_request(self, worker: HandlerWorker, request: RequestEnvelope) -> None:
        """Invoke the handler for one request and publish its single response."""
        with self._metrics.timer(f"dispatch.{worker.channel_name}"):
            try:
                result = worker.handler(request.payload)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                self._metrics.increment(f"dispatch.{worker.channel_name}.error")
                context = worker.log_context.bind(correlation_id=request.correlation_id)
                self._logger.exception(
                    "Handler failed", exc_info=e, **context.with_error(e).to_dict()
                )
                response = ResponseEnvelope.failure(request.correlation_id, error_text_for(e))
            else:
                self._metrics.increment(f"dispatch.{worker.channel_name}.success")
                response = ResponseEnvelope.ok(request.correlation_id, result)

        response_channel = ChannelPatterns.response(
            self._namespace, worker.channel_name, request.client_identity
        )
        try:
            await self._publish(worker, response_channel, response)
        except SerializationError as e:
            # Unencodable result, answer with a failure instead.
            self._metrics.increment(f"dispatch.{worker.channel_name}.error")
            await self._publish(
                worker,
                response_channel,
                ResponseEnvelope.failure(
                    request.correlation_id, f"Unserializable result: {e.message}"
                ),
            )

    async def _publish(
        self, worker: HandlerWorker, channel: str, response: ResponseEnvelope
    ) -> None:
        try:
            await self._multiplexer.publish(channel, response)
        except TransportError as e:
            self._metrics.increment(f"dispatch.{worker.channel_name}.publish_error")
            context = worker.log_context.bind(channel=channel, correlation_id=response.in_reply_to)
            self._logger.exception(
                "Failed to publish response", exc_info=e, **context.with_error(e).to_dict()
            )
