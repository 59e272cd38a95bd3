"""Shared fixtures and fakes for unit tests."""

from __future__ import annotations

import asyncio
import functools
import typing as t
from unittest.mock import AsyncMock

import pytest

from pollster.core.models import Event, Identity
from pollster.core.session import Session
from pollster.monitoring import metrics
from pollster.utils.config import PollerConfig, RegistryConfig


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are module-level; start every test from zero."""
    metrics.reset_all()
    yield
    metrics.reset_all()


class RecordingSession(Session):
    """Session that appends every hook call to a shared log."""

    def __init__(self, *, log: list, **kwargs: t.Any) -> None:
        super().__init__(**kwargs)
        self.log = log
        self.events: t.List[Event] = []

    async def on_create(self) -> None:
        self.log.append(("create", self.identifier))

    async def process_event(self, event: Event) -> None:
        self.log.append(("event", self.identifier, event.event_id))
        self.events.append(event)

    async def on_remove(self) -> None:
        self.log.append(("remove", self.identifier))


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays and can stop a loop after N calls."""

    def __init__(self) -> None:
        self.delays: t.List[float] = []
        self.on_call: t.Optional[t.Callable[[int], None]] = None

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.on_call is not None:
            self.on_call(len(self.delays))
        # yield so a loop that never really sleeps cannot starve the test
        await asyncio.sleep(0)


@pytest.fixture
def session_log() -> list:
    return []


@pytest.fixture
def session_factory(session_log):
    return functools.partial(RecordingSession, log=session_log)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def identify():
    """Identify events by the `user` key of their payload."""

    def _identify(event: Event) -> str:
        return str(event.payload.get("user", "0"))

    return _identify


@pytest.fixture
def poller_config() -> PollerConfig:
    return PollerConfig(
        poll_interval_seconds=1.5,
        cooldown_interval_seconds=6.0,
        skip_backlog=False,
        wait_hint_seconds=1,
        fetch_timeout_seconds=5.0,
    )


@pytest.fixture
def registry_config() -> RegistryConfig:
    return RegistryConfig(idle_timeout_seconds=300.0, handle_signals=False)


@pytest.fixture
def sample_identity() -> Identity:
    return Identity(id=42, name="test_bot")


@pytest.fixture
def mock_source(sample_identity):
    """Mock event source returning nothing by default."""
    source = AsyncMock()
    source.fetch_events = AsyncMock(return_value=[])
    source.resolve_identity = AsyncMock(return_value=sample_identity)
    source.call = AsyncMock(return_value={})
    source.aclose = AsyncMock(return_value=None)
    return source


def make_events(*ids: int, user: str = "alice") -> t.List[Event]:
    """Helper to create a batch of events for one user."""
    return [Event(event_id=i, payload={"user": user, "text": f"msg {i}"}) for i in ids]


@pytest.fixture
def events():
    return make_events
