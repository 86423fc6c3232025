"""Metrics port - where the messenger reports what happened to its messages."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any


class MetricsPort(ABC):
    """Sink for messenger counters, gauges and latency samples.

    Counters track outcomes (query timeouts, dropped messages, handler
    errors); the gauge ``query.pending`` tracks outstanding queries and
    ``dispatch.<channel>`` timers track handler latency per logical channel.
    """

    @abstractmethod
    def increment(self, name: str, value: int = 1) -> None:
        """Add ``value`` to the counter ``name`` (e.g. "query.timeout")."""
        ...

    @abstractmethod
    def gauge(self, name: str, value: float) -> None:
        """Replace the current value of gauge ``name``."""
        ...

    @abstractmethod
    def record(self, name: str, value: float) -> None:
        """Add one sample to the summary ``name``."""
        ...

    @abstractmethod
    def timer(self, name: str) -> AbstractContextManager[Any]:
        """Context manager recording the block's duration in ms under ``name``."""
        ...

    @abstractmethod
    def get_all(self) -> dict[str, Any]:
        """Snapshot of every metric as plain data."""
        ...

    @abstractmethod
    def reset(self) -> None:
        """Forget all collected values."""
        ...
