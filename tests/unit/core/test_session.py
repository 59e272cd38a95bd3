"""Unit tests for the Session base class."""

import pytest

from pollster.core.models import Event, Identity
from pollster.core.session import Session, maybe_await


@pytest.mark.asyncio
class TestSession:
    async def test_defaults_are_noops(self, mock_source):
        session = Session(transport=mock_source, identifier="1", identity=Identity(id=9, name="bot"))

        assert await session.on_create() is None
        assert await session.process_event(Event(event_id=1)) is None
        assert await session.on_remove() is None
        mock_source.call.assert_not_called()

    async def test_keeps_context(self, mock_source):
        me = Identity(id=9, name="bot")
        session = Session(transport=mock_source, identifier="chat-1", identity=me)

        assert session.transport is mock_source
        assert session.identifier == "chat-1"
        assert session.identity is me

    async def test_maybe_await_plain_value(self):
        assert await maybe_await(3) == 3

    async def test_maybe_await_coroutine(self):
        async def answer():
            return 42

        assert await maybe_await(answer()) == 42
