"""Error taxonomy for payload delivery."""

from __future__ import annotations

__all__ = [
    "HttpcatError",
    "DispatcherConfigError",
    "PayloadDecodeError",
    "DeliveryError",
    "TransportError",
    "UnexpectedStatusError",
    "DeliveryGiveUpError",
]


class HttpcatError(Exception):
    """Base class for every error raised by httpcat."""


class DispatcherConfigError(HttpcatError, ValueError):
    """Dispatcher cannot be built from the given configuration."""


class PayloadDecodeError(HttpcatError, ValueError):
    """Payload is not valid gzip data; retrying cannot fix it."""


class DeliveryError(HttpcatError):
    """A single delivery attempt failed. Recoverable by trying another host.

    Attributes:
        host: Host the attempt was sent to.
    """

    def __init__(self, host: str, message: str) -> None:
        super().__init__(message)
        self.host = host


class TransportError(DeliveryError):
    """Connection refused, timeout, DNS failure or similar network error."""


class UnexpectedStatusError(DeliveryError):
    """Host answered, but with a status code outside the success set."""

    def __init__(self, host: str, status_code: int) -> None:
        super().__init__(host, f"Unexpected http code: {status_code}")
        self.status_code = status_code


class DeliveryGiveUpError(HttpcatError):
    """Retry ceiling reached before any host accepted the payload.

    Attributes:
        attempts: Number of attempts made.
        elapsed_sec: Seconds spent in the retry loop.
        last_error: Error of the final attempt.
    """

    def __init__(self, attempts: int, elapsed_sec: float, last_error: DeliveryError) -> None:
        super().__init__(
            f"Giving up after {attempts} attempts in {elapsed_sec:.1f}s: {last_error}"
        )
        self.attempts = attempts
        self.elapsed_sec = elapsed_sec
        self.last_error = last_error
