"""Signal handling for graceful shutdown."""

import asyncio
import logging
import signal
from collections.abc import Iterable

__all__ = ["make_stop_event"]

logger = logging.getLogger(__name__)


def make_stop_event(
    signals: Iterable[signal.Signals] = (signal.SIGTERM, signal.SIGINT),
) -> asyncio.Event:
    """Create an event that is set when a termination signal arrives.

    The main loop races in-flight deliveries against this event, so a
    delivery stuck retrying does not hold the process past SIGTERM. The
    interrupted payload stays in its source and is delivered after restart.

    Args:
        signals: Signals that request shutdown.

    Returns:
        Event set on the first matching signal.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        if not stop.is_set():
            logger.info(f"{sig.name} received, initiating graceful shutdown...")
        stop.set()

    for sig in signals:
        loop.add_signal_handler(sig, handle_signal, sig)

    return stop
