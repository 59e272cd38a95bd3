from __future__ import annotations

import asyncio
import logging
import signal
import time
import types
import typing as t

import anyio

from pollster.monitoring import metrics
from pollster.utils.config import PollerConfig, RegistryConfig
from pollster.utils.resilience import with_timeout

from .errors import SessionError
from .models import Batch, Event, Identity, SessionEntry
from .poller import PollLoop, Sleeper
from .session import SessionFactory, maybe_await

if t.TYPE_CHECKING:
    from pollster.transport.base import EventSource

logger = logging.getLogger(__name__)

Hook = t.Callable[[], t.Any]
Identify = t.Callable[[Event], str]


class SessionRegistry:
    """Owns one session per identifier and the lifecycle around a PollLoop.

    Sessions are created on the first event for their identifier, refreshed
    on every later event and torn down when idle for longer than the
    configured timeout, on `remove()`, or at shutdown.

    Hook errors inside a batch are not isolated: they abort the batch as a
    SessionError, the poll loop cools down and retries the same batch from
    the same cursor. A session that keeps failing therefore stalls the
    cursor until it is fixed.
    """

    def __init__(
        self,
        source: "EventSource",
        session_factory: SessionFactory,
        identify: Identify,
        config: t.Optional[RegistryConfig] = None,
        poller_config: t.Optional[PollerConfig] = None,
        *,
        clock: t.Callable[[], float] = time.monotonic,
        poll_sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._source = source
        self._factory = session_factory
        self._identify = identify
        self._config = config or RegistryConfig()
        self._clock = clock
        self._poller = PollLoop(source, self.on_batch, poller_config, sleep=poll_sleep)
        self._sessions: t.Dict[str, SessionEntry] = {}
        # Held for every mutation of the session map so only one batch, sweep or teardown runs at a time.
        self._lock = asyncio.Lock()
        self._identity: t.Optional[Identity] = None
        self._stop_hook: t.Optional[Hook] = None
        self._shutdown_started = False
        self._shutdown_task: t.Optional[asyncio.Task] = None
        self._closed = asyncio.Event()

    @property
    def source(self) -> "EventSource":
        return self._source

    @property
    def poller(self) -> PollLoop:
        return self._poller

    @property
    def identity(self) -> t.Optional[Identity]:
        return self._identity

    @property
    def sessions(self) -> t.Mapping[str, SessionEntry]:
        return types.MappingProxyType(self._sessions)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def get(self, identifier: str) -> t.Optional[t.Any]:
        entry = self._sessions.get(identifier)
        return entry.instance if entry is not None else None

    async def run(self, start_hook: t.Optional[Hook] = None, stop_hook: t.Optional[Hook] = None) -> bool:
        """Start up, poll until shut down, and return once it is safe to exit.

        Returns False when startup was aborted because the identity could not
        be resolved, True otherwise.
        """
        self._stop_hook = stop_hook
        started = False
        failure: t.Optional[Exception] = None
        async with anyio.create_task_group() as tg:
            if self._config.handle_signals:
                await tg.start(self._watch_signals)
            try:
                started = await self._startup(start_hook)
            except Exception as exc:
                # re-raised below so the caller sees it unwrapped by the task group
                failure = exc
            else:
                await self.wait_closed()
            tg.cancel_scope.cancel()
        if failure is not None:
            raise failure
        return started

    async def on_batch(self, events: Batch) -> None:
        async with self._lock:
            for event in events:
                identifier = self._identify(event)
                entry = self._sessions.get(identifier)
                if entry is None:
                    entry = await self._create(identifier)
                await self._invoke(entry, "process_event", event)
                entry.last_active = self._clock()
            await self._sweep(self._clock())

    async def sweep(self, now: t.Optional[float] = None) -> t.List[str]:
        """Evict every session idle for at least the idle timeout; return their identifiers."""
        async with self._lock:
            return await self._sweep(self._clock() if now is None else now)

    async def remove(self, identifier: str) -> bool:
        async with self._lock:
            entry = self._sessions.get(identifier)
            if entry is None:
                return False
            await self._invoke(entry, "on_remove")
            del self._sessions[identifier]
        metrics.sessions_total.inc(event="removed")
        logger.debug("session %s removed", identifier)
        return True

    def request_shutdown(self) -> None:
        """Schedule the shutdown sequence without waiting for it.

        Safe to call from a session hook, where awaiting `shutdown()` would
        wait on the very cycle that is running the hook.
        """
        if self._shutdown_started or self._shutdown_task is not None:
            return
        self._shutdown_task = asyncio.get_running_loop().create_task(self.shutdown())

    async def shutdown(self) -> None:
        if self._shutdown_started:
            await self.wait_closed()
            return
        self._shutdown_started = True
        logger.info("shutting down with %d live session(s)", len(self._sessions))
        try:
            self._poller.stop()
            await self._poller.join()
            async with self._lock:
                for identifier, entry in list(self._sessions.items()):
                    try:
                        await self._invoke(entry, "on_remove")
                    except SessionError:
                        logger.exception("session %s failed to clean up during shutdown", identifier)
                    self._sessions.pop(identifier, None)
                    metrics.sessions_total.inc(event="removed")
            if self._stop_hook is not None:
                try:
                    await maybe_await(self._stop_hook())
                except Exception:  # noqa: BLE001 - the host must still be told it can exit
                    logger.exception("stop hook failed")
        finally:
            self._closed.set()
        logger.info("shutdown complete")

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def _startup(self, start_hook: t.Optional[Hook]) -> bool:
        if start_hook is not None:
            await maybe_await(start_hook())
        try:
            identity = await with_timeout(
                self._source.resolve_identity,
                self._poller.config.fetch_timeout_seconds,
                what="identity",
            )
        except Exception as exc:  # noqa: BLE001 - any failure aborts startup
            logger.error("could not resolve own identity, not polling: %s", exc)
            if not self._shutdown_started:
                self._shutdown_started = True
                try:
                    if self._stop_hook is not None:
                        await maybe_await(self._stop_hook())
                finally:
                    self._closed.set()
            return False
        self._identity = identity
        if self._shutdown_started:
            return False
        logger.info("%s#%s: listening for events", identity.name, identity.id)
        await self._poller.start()
        return True

    async def _watch_signals(self, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            task_status.started()
            async for signum in signals:
                name = signal.Signals(signum).name
                if self._shutdown_started or self._shutdown_task is not None:
                    logger.warning("received %s while shutting down, ignoring", name)
                    continue
                logger.info("received %s, shutting down", name)
                self.request_shutdown()

    async def _create(self, identifier: str) -> SessionEntry:
        instance = self._factory(transport=self._source, identifier=identifier, identity=self._identity)
        entry = SessionEntry(identifier=identifier, instance=instance, last_active=0.0)
        await self._invoke(entry, "on_create")
        self._sessions[identifier] = entry
        metrics.sessions_total.inc(event="created")
        logger.debug("session %s created", identifier)
        return entry

    async def _sweep(self, now: float) -> t.List[str]:
        timeout = self._config.idle_timeout_seconds
        if timeout is None:
            return []
        evicted: t.List[str] = []
        for identifier, entry in list(self._sessions.items()):
            if now - entry.last_active >= timeout:
                await self._invoke(entry, "on_remove")
                del self._sessions[identifier]
                evicted.append(identifier)
                metrics.sessions_total.inc(event="evicted")
                logger.debug("session %s evicted after %.1fs idle", identifier, now - entry.last_active)
        return evicted

    async def _invoke(self, entry: SessionEntry, hook: str, *args: t.Any) -> None:
        try:
            await maybe_await(getattr(entry.instance, hook)(*args))
        except Exception as exc:
            raise SessionError(entry.identifier, hook, exc) from exc
