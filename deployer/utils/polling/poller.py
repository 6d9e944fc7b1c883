"""
Bounded fixed-interval polling.

Used wherever the control plane accepts a request but only reflects it later
(eventual consistency). Time is read and spent through a ``Clock`` so tests can
simulate elapsed time without sleeping.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 6.0
DEFAULT_POLL_MAX_ATTEMPTS = 100


class Clock:
    """Wall clock backed by ``time``."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


@dataclass(frozen=True)
class PollResult:
    """Outcome of a polling loop."""

    succeeded: bool
    attempts: int
    elapsed_seconds: float


class Poller:
    """Run a check until it passes or the attempt budget is spent.

    The check runs at most ``max_attempts`` times with ``interval_seconds``
    between consecutive attempts, so the total wait is bounded by
    ``interval_seconds * max_attempts``.
    """

    def __init__(
        self,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
        clock: Clock = None,
    ) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.clock = clock if clock is not None else Clock()

    def poll(self, check: Callable[[], bool], description: str = "condition") -> PollResult:
        """Call ``check`` until it returns True or attempts run out.

        Args:
            check: Zero-argument callable; True means the desired state is observed.
            description: Human-readable name used in debug logs.

        Returns:
            PollResult with the number of checks actually made.
        """
        start = self.clock.monotonic()
        for attempt in range(1, self.max_attempts + 1):
            if check():
                return PollResult(True, attempt, self.clock.monotonic() - start)
            if attempt < self.max_attempts:
                logger.debug(
                    "Waiting for %s (attempt %d/%d), next check in %.1fs",
                    description, attempt, self.max_attempts, self.interval_seconds,
                )
                self.clock.sleep(self.interval_seconds)

        return PollResult(False, self.max_attempts, self.clock.monotonic() - start)
