"""Application layer - Multiplexer, message channels, dispatcher and messenger."""

from .dispatcher import Dispatcher
from .message_channel import MessageChannel
from .messenger import Messenger
from .multiplexer import Multiplexer

__all__ = [
    "Dispatcher",
    "MessageChannel",
    "Messenger",
    "Multiplexer",
]
