"""Payload source port definition."""

from typing import BinaryIO, ContextManager, Protocol

__all__ = ["PayloadSourcePort"]


class PayloadSourcePort(Protocol):
    """Where compressed payloads come from.

    Keys are opaque to the core. A payload stays in the source until it
    is acked or rejected, so anything interrupted mid-delivery is polled
    again later.
    """

    def poll(self) -> list[str]:
        """Return keys of pending payloads, oldest first."""
        ...

    def open(self, key: str) -> ContextManager[BinaryIO]:
        """Open a pending payload for reading."""
        ...

    def ack(self, key: str) -> None:
        """Mark a payload as delivered."""
        ...

    def reject(self, key: str) -> None:
        """Set aside a payload that can never be delivered."""
        ...
