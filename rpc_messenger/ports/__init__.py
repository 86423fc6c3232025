"""Ports layer - Interfaces for external communication."""

from .logger import LoggerPort
from .metrics import MetricsPort
from .transport import InboundMessage, TransportPort

__all__ = [
    "InboundMessage",
    "LoggerPort",
    "MetricsPort",
    "TransportPort",
]
