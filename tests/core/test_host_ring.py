"""Tests for round-robin host selection."""

import threading

import pytest

from httpcat.core.errors import DispatcherConfigError
from httpcat.core.host_ring import HostRing

__all__ = []


def test_current_returns_cursor_and_host() -> None:
    """current() pairs the cursor with the host it points at."""
    ring = HostRing(["a:80", "b:80", "c:80"], start=1)

    assert ring.current() == (1, "b:80")
    assert len(ring) == 3


def test_record_failure_wraps_around() -> None:
    """The cursor cycles back to the first host after the last."""
    ring = HostRing(["a", "b", "c"], start=2)

    assert ring.record_failure(2) == 0
    assert ring.current() == (0, "a")


def test_single_host_never_moves() -> None:
    """With one host, failures keep selecting that host."""
    ring = HostRing(["only"], start=0)

    for _ in range(5):
        assert ring.record_failure(0) == 0

    assert ring.current() == (0, "only")


def test_stale_failure_does_not_rotate_again() -> None:
    """A failure recorded for an index the cursor already left is ignored."""
    ring = HostRing(["a", "b", "c"], start=0)

    ring.record_failure(0)
    ring.record_failure(0)

    assert ring.cursor == 1


def test_start_is_taken_modulo_host_count() -> None:
    """An out-of-range start wraps instead of failing."""
    assert HostRing(["a", "b"], start=5).cursor == 1


def test_hosts_are_stripped_and_immutable() -> None:
    """Host list is stored as a tuple of trimmed strings."""
    hosts = [" a:1 ", "b:2"]
    ring = HostRing(hosts, start=0)
    hosts.append("c:3")

    assert ring.hosts == ("a:1", "b:2")


@pytest.mark.parametrize("hosts", [[], [""], ["a", "  "]])
def test_rejects_empty_or_blank_hosts(hosts: list[str]) -> None:
    """An empty or blank host set is a configuration error."""
    with pytest.raises(DispatcherConfigError):
        HostRing(hosts)


def test_concurrent_threads_rotate_once_per_observed_host() -> None:
    """Threads failing on the same observed index advance the cursor once."""
    ring = HostRing(["a", "b", "c", "d"], start=0)
    barrier = threading.Barrier(8)

    def fail_on_current() -> None:
        index, _ = ring.current()
        barrier.wait()
        ring.record_failure(index)

    threads = [threading.Thread(target=fail_on_current) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert ring.cursor == 1
