"""Core module: the poll loop, the session registry and their models."""

from .errors import PollsterError, ProtocolError, RemoteError, SessionError, TransportError
from .models import Event, Identity, PollState, SessionEntry
from .poller import PollLoop
from .registry import SessionRegistry
from .session import Session

__all__ = [
    # Polling
    "PollLoop",
    "PollState",
    # Sessions
    "SessionRegistry",
    "Session",
    "SessionEntry",
    # Models
    "Event",
    "Identity",
    # Errors
    "PollsterError",
    "TransportError",
    "RemoteError",
    "ProtocolError",
    "SessionError",
]
