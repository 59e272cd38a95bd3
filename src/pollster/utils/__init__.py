"""Utility module for configuration and resilience helpers."""

from .config import PollerConfig, PollsterConfig, RegistryConfig, TransportConfig
from .resilience import with_timeout

__all__ = [
    "PollerConfig",
    "PollsterConfig",
    "RegistryConfig",
    "TransportConfig",
    "with_timeout",
]
