from __future__ import annotations

import typing as t
from typing import Awaitable, Callable, TypeVar

import anyio

from pollster.core.errors import TransportError

T = TypeVar("T")


async def with_timeout(
    coro_factory: Callable[[], Awaitable[T]],
    timeout_seconds: t.Optional[float],
    what: str = "operation",
) -> T:
    """Run `coro_factory()` under a deadline, reporting expiry as a TransportError.

    A `None` timeout runs the call unbounded.
    """
    if timeout_seconds is None:
        return await coro_factory()
    try:
        with anyio.fail_after(timeout_seconds):
            return await coro_factory()
    except TimeoutError as exc:
        raise TransportError(f"{what} timed out after {timeout_seconds}s") from exc
