from __future__ import annotations

import asyncio
import logging
import time
import typing as t

from pollster.monitoring import metrics
from pollster.utils.config import PollerConfig
from pollster.utils.resilience import with_timeout

from .errors import ProtocolError, TransportError
from .models import NEWEST_ONLY_CURSOR, Batch, PollState

if t.TYPE_CHECKING:
    from pollster.transport.base import EventSource

logger = logging.getLogger(__name__)

BatchHandler = t.Callable[[Batch], t.Awaitable[None]]
Sleeper = t.Callable[[float], t.Awaitable[t.Any]]


class PollLoop:
    """Drives the fetch -> dispatch -> reschedule cycle over one cursor.

    Batches are handed to `on_batch` one at a time and the cursor only moves
    past a batch once its dispatch has returned, so a failing dispatch makes
    the next cycle fetch the same batch again. Failures never leave the loop:
    they are logged and the next cycle waits for the cooldown interval
    instead of the polling interval.
    """

    def __init__(
        self,
        source: "EventSource",
        on_batch: BatchHandler,
        config: t.Optional[PollerConfig] = None,
        *,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._source = source
        self._on_batch = on_batch
        self._config = config or PollerConfig()
        self._sleep = sleep
        self._state = PollState.IDLE
        self._cursor = 0
        self._starting = False
        self._in_cycle = False
        self._task: t.Optional[asyncio.Task] = None

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._state is PollState.POLLING

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def config(self) -> PollerConfig:
        return self._config

    async def start(self, skip_backlog: t.Optional[bool] = None) -> bool:
        if self._state is PollState.POLLING or self._starting:
            return self.is_polling
        self._starting = True
        try:
            # A cycle left over from a previous run must finish before a new task owns the cursor.
            await self.join()
            if not self._starting:
                # stop() arrived while the previous cycle was finishing
                return self.is_polling
            if skip_backlog is None:
                skip_backlog = self._config.skip_backlog
            if skip_backlog:
                await self.skip_backlog()
            if not self._starting:
                # stop() arrived while we were skipping the backlog
                return self.is_polling
            self._state = PollState.POLLING
            self._task = asyncio.create_task(self._run())
        finally:
            self._starting = False
        logger.debug("poll loop started at cursor %d", self._cursor)
        return self.is_polling

    async def skip_backlog(self) -> None:
        """Drop whatever is pending right now without dispatching it."""
        try:
            events = await self._fetch(NEWEST_ONLY_CURSOR)
        except Exception as exc:  # noqa: BLE001 - startup proceeds regardless
            logger.warning("failed to skip pending events before polling: %s", exc)
            return
        if events:
            newest = events[-1].event_id
            self._advance(newest + 1)
            logger.debug("skipped backlog up to event %d", newest)

    async def poll_once(self) -> float:
        """Run one cycle and return the delay before the next one."""
        cursor = self._cursor
        logger.debug("polling events since cursor %d", cursor)
        try:
            events = await self._fetch(cursor)
            if not events:
                metrics.poll_cycles_total.inc(outcome="empty")
                return self._config.poll_interval_seconds
            logger.debug("got %d event(s), dispatching", len(events))
            metrics.batch_size.observe(len(events))
            await self._on_batch(events)
            self._advance(max(e.event_id for e in events) + 1)
        except (TransportError, ProtocolError) as exc:
            logger.warning(
                "fetch failed at cursor %d, cooling down for %.1fs: %s",
                cursor,
                self._config.cooldown_interval_seconds,
                exc,
            )
            metrics.poll_cycles_total.inc(outcome="error")
            return self._config.cooldown_interval_seconds
        except Exception:  # noqa: BLE001 - a cycle failure never escapes the loop
            logger.exception(
                "poll cycle failed at cursor %d, cooling down for %.1fs",
                cursor,
                self._config.cooldown_interval_seconds,
            )
            metrics.poll_cycles_total.inc(outcome="error")
            return self._config.cooldown_interval_seconds
        metrics.poll_cycles_total.inc(outcome="batch")
        return self._config.poll_interval_seconds

    def stop(self) -> bool:
        if self._starting:
            self._starting = False
            self._state = PollState.STOPPED
            return self.is_polling
        if self._state is not PollState.POLLING:
            return self.is_polling
        self._state = PollState.STOPPED
        task = self._task
        # An in-flight cycle is left to finish; only the pending sleep is cancelled.
        if task is not None and not task.done() and not self._in_cycle:
            task.cancel()
        logger.debug("poll loop stopped at cursor %d", self._cursor)
        return self.is_polling

    async def join(self) -> None:
        """Wait until no cycle is in flight and the background task has exited."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        await asyncio.wait({task})

    async def _run(self) -> None:
        while self._state is PollState.POLLING:
            self._in_cycle = True
            try:
                delay = await self.poll_once()
            finally:
                self._in_cycle = False
            if self._state is not PollState.POLLING:
                break
            await self._sleep(delay)

    async def _fetch(self, cursor: int) -> Batch:
        started = time.monotonic()
        try:
            return await with_timeout(
                lambda: self._source.fetch_events(cursor, self._config.wait_hint_seconds),
                self._config.fetch_timeout_seconds,
                what="fetch",
            )
        finally:
            metrics.fetch_latency_seconds.observe(time.monotonic() - started)

    def _advance(self, cursor: int) -> None:
        if cursor > self._cursor:
            self._cursor = cursor
