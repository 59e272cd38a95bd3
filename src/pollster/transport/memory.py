from __future__ import annotations

import asyncio
import typing as t

from ..core.models import NEWEST_ONLY_CURSOR, Batch, Event, Identity, Payload
from .base import EventSource


class InMemoryEventSource(EventSource):
    """A simple in-memory event source for dev/test.

    Mirrors the cursor semantics of a long-poll queue: fetching at cursor `c`
    confirms (and forgets) every event below `c`, and the newest-only cursor
    returns the last pending event while forgetting everything before it.
    """

    def __init__(
        self,
        identity: t.Optional[Identity] = None,
        *,
        first_event_id: int = 1,
        max_batch: int = 100,
    ) -> None:
        self._identity = identity or Identity(id=1, name="pollster_bot")
        self._next_id = first_event_id
        self._max_batch = max_batch
        self._pending: t.List[Event] = []
        self._fetch_errors: t.List[BaseException] = []
        self._identity_errors: t.List[BaseException] = []
        self.fetch_cursors: t.List[int] = []
        self.calls: t.List[t.Tuple[str, t.Optional[dict]]] = []
        self.closed = False

    def push(self, payload: t.Optional[Payload] = None) -> Event:
        event = Event(event_id=self._next_id, payload=dict(payload or {}))
        self._next_id += 1
        self._pending.append(event)
        return event

    def fail_next_fetch(self, exc: BaseException) -> None:
        self._fetch_errors.append(exc)

    def fail_next_identity(self, exc: BaseException) -> None:
        self._identity_errors.append(exc)

    @property
    def pending(self) -> t.List[Event]:
        return list(self._pending)

    async def fetch_events(self, cursor: int, wait_hint: int) -> Batch:
        self.fetch_cursors.append(cursor)
        await asyncio.sleep(0)
        if self._fetch_errors:
            raise self._fetch_errors.pop(0)
        if cursor == NEWEST_ONLY_CURSOR:
            self._pending = self._pending[-1:]
            return list(self._pending)
        self._pending = [e for e in self._pending if e.event_id >= cursor]
        return self._pending[: self._max_batch]

    async def resolve_identity(self) -> Identity:
        if self._identity_errors:
            raise self._identity_errors.pop(0)
        return self._identity

    async def call(self, method: str, payload: t.Optional[dict] = None) -> t.Any:
        self.calls.append((method, payload))
        return {"method": method}

    async def aclose(self) -> None:
        self.closed = True
