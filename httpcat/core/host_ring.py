"""Round-robin host selection shared by all deliveries of one dispatcher."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Sequence

from httpcat.core.errors import DispatcherConfigError

__all__ = ["HostRing"]

logger = logging.getLogger(__name__)


class HostRing:
    """Fixed ordered set of hosts with a failover cursor.

    Picking a host and recording a failure are separate steps. A failure
    only advances the cursor when it still points at the failed host, so
    concurrent callers that fail against the same host rotate it once.

    Safe to share between tasks and threads.
    """

    def __init__(self, hosts: Sequence[str], *, start: int | None = None) -> None:
        """Initialize the ring.

        Args:
            hosts: Ordered host addresses (``host`` or ``host:port``).
            start: Initial cursor. Random when omitted, so independently
                started dispatchers spread their first attempts.

        Raises:
            DispatcherConfigError: If no hosts are given or one is blank.
        """
        if not hosts:
            raise DispatcherConfigError("Need at least one host defined.")
        if any(not isinstance(h, str) or not h.strip() for h in hosts):
            raise DispatcherConfigError(f"Host entries must be non-empty strings: {list(hosts)!r}")

        self._hosts: tuple[str, ...] = tuple(h.strip() for h in hosts)
        self._cursor = random.randrange(len(self._hosts)) if start is None else start % len(self._hosts)
        self._lock = threading.Lock()

    @property
    def hosts(self) -> tuple[str, ...]:
        return self._hosts

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def __len__(self) -> int:
        return len(self._hosts)

    def current(self) -> tuple[int, str]:
        """Return the cursor and the host it points at."""
        with self._lock:
            return self._cursor, self._hosts[self._cursor]

    def record_failure(self, index: int) -> int:
        """Rotate away from a failed host.

        Args:
            index: Cursor value the failed attempt was made with.

        Returns:
            Cursor after the call.
        """
        with self._lock:
            if self._cursor == index:
                self._cursor = (index + 1) % len(self._hosts)
            else:
                logger.debug(
                    "Cursor already moved from %d to %d, not rotating again", index, self._cursor
                )
            return self._cursor
