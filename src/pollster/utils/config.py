from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

TOKEN_ENV = "TELEGRAM_BOT_TOKEN"


@dataclass
class PollerConfig:
    poll_interval_seconds: float = 1.5
    cooldown_interval_seconds: float = 6.0
    skip_backlog: bool = True
    # Long-poll timeout sent to the remote, not our scheduling interval.
    wait_hint_seconds: int = 1
    # Upper bound on a single fetch so a stuck transport cannot stall shutdown.
    fetch_timeout_seconds: float = 30.0


@dataclass
class RegistryConfig:
    idle_timeout_seconds: Optional[float] = 300.0  # None disables idle eviction
    handle_signals: bool = True


@dataclass
class TransportConfig:
    token: Optional[str] = None
    base_url: str = "https://api.telegram.org"
    timeout_seconds: float = 40.0
    allowed_updates: Optional[List[str]] = None

    def resolve_token(self) -> Optional[str]:
        token = (self.token or os.environ.get(TOKEN_ENV, "")).strip()
        return token or None


@dataclass
class PollsterConfig:
    transport: TransportConfig = dataclasses.field(default_factory=TransportConfig)
    poller: PollerConfig = dataclasses.field(default_factory=PollerConfig)
    registry: RegistryConfig = dataclasses.field(default_factory=RegistryConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PollsterConfig":
        def build(dc_cls, key):
            values = data.get(key, {})
            return dc_cls(**values)

        return cls(
            transport=build(TransportConfig, "transport"),
            poller=build(PollerConfig, "poller"),
            registry=build(RegistryConfig, "registry"),
        )
