from __future__ import annotations

import enum
import typing as t
from dataclasses import dataclass, field


class PollState(str, enum.Enum):
    IDLE = "IDLE"
    POLLING = "POLLING"
    STOPPED = "STOPPED"


Payload = t.Dict[str, t.Any]

# Cursor value asking the remote for only the newest pending event.
NEWEST_ONLY_CURSOR = -1


@dataclass
class Event:
    event_id: int
    payload: Payload = field(default_factory=dict)


Batch = t.List[Event]


@dataclass
class Identity:
    id: int
    name: str


@dataclass
class SessionEntry:
    identifier: str
    instance: t.Any
    last_active: float = 0.0
