"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["HttpAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class HttpAttemptDto:
    """Immutable snapshot of a single delivery attempt.

    Attributes:
        host: Host the attempt was sent to.
        started_at_sec: Monotonic seconds when the request left the process.
        finished_at_sec: Monotonic seconds when the exchange ended.
        is_failed: True on transport error or a status outside the success set.
        status_code: HTTP status code when a response arrived; None otherwise.
    """

    host: str
    started_at_sec: float
    finished_at_sec: float
    is_failed: bool = False
    status_code: int | None = None


class MetricsPort(Protocol):
    """Interface for recording delivery attempt metrics.

    Implementations must be non-blocking. The dispatcher calls update()
    after each attempt; presentation layers call __str__() to render
    summaries.
    """

    def update(self, attempt: HttpAttemptDto, /) -> None:
        """Record a finished attempt.

        Args:
            attempt: The attempt to record.
        """
        ...

    def __str__(self) -> str:
        """Return concise textual summary for humans."""
        ...
