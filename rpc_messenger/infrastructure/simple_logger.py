"""LoggerPort adapter over the standard logging module."""

import logging
from typing import Any

from ..ports.logger import LoggerPort

DEFAULT_LOGGER_NAME = "rpc_messenger"

# LogRecord attributes that may not be overwritten through ``extra``.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


def _as_extra(context: dict[str, Any]) -> dict[str, Any]:
    """Prefix context keys that collide with LogRecord attributes."""
    return {f"ctx_{k}" if k in _RESERVED else k: v for k, v in context.items()}


class SimpleLogger(LoggerPort):
    """Logger using Python's standard logging.

    Keyword context becomes attributes of the log record (via ``extra``),
    so handlers and formatters can pick up channel names and correlation
    ids. Keys that clash with built-in record attributes get a ``ctx_``
    prefix instead of raising.
    """

    def __init__(self, name: str = DEFAULT_LOGGER_NAME, level: int = logging.INFO):
        """Initialize the logger.

        Args:
            name: Logger name (default: "rpc_messenger")
            level: Logging level (default: INFO)
        """
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)

        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self._logger.addHandler(handler)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, extra=_as_extra(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, extra=_as_extra(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, extra=_as_extra(kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, extra=_as_extra(kwargs))

    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        self._logger.error(message, exc_info=exc_info or True, extra=_as_extra(kwargs))
