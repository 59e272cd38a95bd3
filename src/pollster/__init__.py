"""pollster

A long-poll client core: a cursor-tracking poll loop over a remote event
queue and a registry that routes each event to a lazily created per-actor
session, evicts idle sessions and orchestrates startup and shutdown.
"""

from .core.errors import (
    PollsterError,
    ProtocolError,
    RemoteError,
    SessionError,
    TransportError,
)
from .core.models import Event, Identity, PollState
from .core.poller import PollLoop
from .core.registry import SessionRegistry
from .core.session import Session
from .identify import per_chat_id, per_from_id
from .transport import EventSource, InMemoryEventSource, TelegramEventSource
from .utils.config import (
    PollerConfig,
    PollsterConfig,
    RegistryConfig,
    TransportConfig,
)

__all__ = [
    "PollLoop",
    "SessionRegistry",
    "Session",
    "Event",
    "Identity",
    "PollState",
    "EventSource",
    "InMemoryEventSource",
    "TelegramEventSource",
    "per_chat_id",
    "per_from_id",
    "PollsterConfig",
    "PollerConfig",
    "RegistryConfig",
    "TransportConfig",
    "PollsterError",
    "TransportError",
    "RemoteError",
    "ProtocolError",
    "SessionError",
]

__version__ = "0.1.0"
