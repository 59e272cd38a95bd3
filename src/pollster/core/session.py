from __future__ import annotations

import inspect
import typing as t

from .models import Event, Identity

if t.TYPE_CHECKING:
    from pollster.transport.base import EventSource


class Session:
    """Per-identifier handler created lazily by the registry.

    All hooks are optional: the defaults do nothing. Subclasses may override
    them with coroutines or plain functions; the registry awaits whatever is
    awaitable and runs the hooks of one registry strictly one at a time.
    """

    def __init__(self, *, transport: "EventSource", identifier: str, identity: t.Optional[Identity]) -> None:
        self.transport = transport
        self.identifier = identifier
        self.identity = identity

    async def on_create(self) -> None:
        return None

    async def process_event(self, event: Event) -> None:
        return None

    async def on_remove(self) -> None:
        return None


SessionFactory = t.Callable[..., Session]


async def maybe_await(result: t.Any) -> t.Any:
    if inspect.isawaitable(result):
        return await result
    return result
