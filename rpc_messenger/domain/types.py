"""Type definitions and protocols for handlers and callbacks."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from .models import Envelope


class RequestHandler(Protocol):
    """Protocol for logical channel handlers.

    Handlers receive the request payload and return the response payload.
    Both must be serializable by the configured envelope codec. Plain
    functions are accepted as well as coroutine functions.
    """

    def __call__(self, payload: Any) -> Any | Awaitable[Any]:
        """Handle a request payload.

        Args:
            payload: The payload sent by the querying client

        Returns:
            The response payload, or an awaitable resolving to it
        """
        ...


EnvelopeCallback = Callable[[Envelope], Awaitable[None]]
"""Multiplexer callback type: (decoded envelope) -> Awaitable[None]"""
