from .base import EventSource
from .memory import InMemoryEventSource
from .telegram import TelegramEventSource

__all__ = ["EventSource", "InMemoryEventSource", "TelegramEventSource"]
