from __future__ import annotations

import typing as t
from abc import ABC, abstractmethod

from ..core.models import Batch, Identity


class EventSource(ABC):
    """The remote queue as seen by the poll loop and the registry."""

    @abstractmethod
    async def fetch_events(self, cursor: int, wait_hint: int) -> Batch:  # pragma: no cover - interface
        """Return pending events at or after `cursor` in ascending `event_id` order.

        Raises TransportError on network failure and ProtocolError when the
        response does not have the expected shape. An empty batch is valid.
        """
        raise NotImplementedError

    @abstractmethod
    async def resolve_identity(self) -> Identity:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def call(self, method: str, payload: t.Optional[dict] = None) -> t.Any:  # pragma: no cover - interface
        """Submit an outbound call (send a message, answer a query, ...)."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
