from __future__ import annotations

import typing as t


class PollsterError(RuntimeError):
    """Base class for errors raised by pollster."""


class TransportError(PollsterError):
    """Network failure, timeout or remote-reported failure while talking to the event source."""


class RemoteError(TransportError):
    def __init__(self, method: str, error_code: t.Optional[int], description: str) -> None:
        super().__init__(f"{method} failed: {error_code} {description}")
        self.method = method
        self.error_code = error_code
        self.description = description


class ProtocolError(PollsterError):
    """The event source answered with something that is not the expected shape."""


class SessionError(PollsterError):
    """A session hook raised while handling a batch."""

    def __init__(self, identifier: str, hook: str, cause: BaseException) -> None:
        super().__init__(f"session {identifier!r} failed in {hook}: {cause!r}")
        self.identifier = identifier
        self.hook = hook
        self.cause = cause
