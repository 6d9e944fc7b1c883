"""Polling helpers for eventually-consistent control-plane state."""

from utils.polling.poller import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_MAX_ATTEMPTS,
    Clock,
    PollResult,
    Poller,
)

__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_POLL_MAX_ATTEMPTS",
    "Clock",
    "PollResult",
    "Poller",
]
