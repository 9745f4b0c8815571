"""Backoff and give-up rules for the delivery retry loop."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["RetryPolicy", "DEFAULT_BACKOFF_AFTER", "DEFAULT_BACKOFF_SEC"]

DEFAULT_BACKOFF_AFTER = 10
DEFAULT_BACKOFF_SEC = 1.0


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """How long to keep retrying a payload and how fast.

    The defaults never give up: delivery is at-least-once and blocks
    until some host accepts the payload.

    Attributes:
        backoff_after: Failures tolerated before every further attempt is
            delayed by ``backoff_sec``.
        backoff_sec: Fixed delay once ``backoff_after`` is reached.
        max_attempts: Give up after this many failed attempts; None retries forever.
        max_elapsed_sec: Give up once this much time was spent; None retries forever.
    """

    backoff_after: int = DEFAULT_BACKOFF_AFTER
    backoff_sec: float = DEFAULT_BACKOFF_SEC
    max_attempts: int | None = None
    max_elapsed_sec: float | None = None

    def __post_init__(self) -> None:
        if self.backoff_after < 0:
            raise ValueError(f"backoff_after must be >= 0 (got: {self.backoff_after})")
        if self.backoff_sec < 0:
            raise ValueError(f"backoff_sec must be >= 0 (got: {self.backoff_sec})")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1 or None (got: {self.max_attempts})")
        if self.max_elapsed_sec is not None and self.max_elapsed_sec <= 0:
            raise ValueError(f"max_elapsed_sec must be > 0 or None (got: {self.max_elapsed_sec})")

    @property
    def is_unbounded(self) -> bool:
        return self.max_attempts is None and self.max_elapsed_sec is None

    def delay_for(self, failures: int) -> float:
        """Delay before the next attempt, given the failures so far."""
        return self.backoff_sec if failures >= self.backoff_after else 0.0

    def exhausted(self, failures: int, elapsed_sec: float) -> bool:
        """Whether the loop should stop retrying."""
        if self.max_attempts is not None and failures >= self.max_attempts:
            return True
        if self.max_elapsed_sec is not None and elapsed_sec >= self.max_elapsed_sec:
            return True
        return False
