"""Async test helpers."""

import asyncio
from collections.abc import Callable

from rpc_messenger.domain.models import RequestEnvelope, ResponseEnvelope
from rpc_messenger.infrastructure.serialization import detect_and_deserialize
from rpc_messenger.ports.transport import TransportPort


async def eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Wait until predicate() is true or fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


async def next_request(transport: TransportPort, timeout: float = 1.0) -> RequestEnvelope:
    """Read and decode the next request seen by a raw transport."""
    message = await asyncio.wait_for(transport.receive(), timeout)
    return detect_and_deserialize(message.data, RequestEnvelope)


async def next_response(transport: TransportPort, timeout: float = 1.0) -> ResponseEnvelope:
    """Read and decode the next response seen by a raw transport."""
    message = await asyncio.wait_for(transport.receive(), timeout)
    return detect_and_deserialize(message.data, ResponseEnvelope)
