"""Logger port used by the multiplexer, channels and dispatcher."""

from abc import ABC, abstractmethod
from typing import Any


class LoggerPort(ABC):
    """Structured logging interface.

    Keyword arguments carry context such as ``channel`` or
    ``correlation_id`` and are handed to the implementation unchanged.
    Dropped messages are reported at warning level; failures that carry
    a traceback go through :meth:`exception`.
    """

    @abstractmethod
    def debug(self, message: str, **kwargs: Any) -> None:
        """Diagnostic detail, e.g. a late response being ignored."""
        ...

    @abstractmethod
    def info(self, message: str, **kwargs: Any) -> None:
        """Lifecycle events such as start, stop and handler registration."""
        ...

    @abstractmethod
    def warning(self, message: str, **kwargs: Any) -> None:
        """Recoverable problems such as a malformed envelope being dropped."""
        ...

    @abstractmethod
    def error(self, message: str, **kwargs: Any) -> None:
        """Failures without an exception object at hand."""
        ...

    @abstractmethod
    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        """Failures with a traceback, taken from ``exc_info`` or the active exception."""
        ...
