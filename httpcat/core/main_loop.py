"""Main loop that drains a payload source through the dispatcher."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import BinaryIO

from httpcat.core.dispatcher import DeliveryResult
from httpcat.core.errors import DeliveryGiveUpError, PayloadDecodeError
from httpcat.ports.payload import PayloadSourcePort
from httpcat.ports.settings import SettingsPort

__all__ = ["start_main_loop", "deliver_until_stopped"]

logger = logging.getLogger(__name__)

DeliverFn = Callable[[BinaryIO], Awaitable[DeliveryResult]]


async def deliver_until_stopped(
    deliver_fn: DeliverFn,
    stream: BinaryIO,
    stop_event: asyncio.Event,
) -> DeliveryResult | None:
    """Run one delivery, cancelling it if shutdown is requested first.

    Returns:
        The delivery result, or None if the stop event won the race.
    """
    delivery = asyncio.ensure_future(deliver_fn(stream))
    stopper = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({delivery, stopper}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        delivery.cancel()
        raise
    finally:
        stopper.cancel()
    await asyncio.gather(stopper, return_exceptions=True)

    if delivery.done():
        return delivery.result()

    delivery.cancel()
    await asyncio.gather(delivery, return_exceptions=True)
    return None


async def _idle(stop_event: asyncio.Event, timeout: float) -> None:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        pass


async def start_main_loop(
    settings: SettingsPort,
    stop_event: asyncio.Event,
    source: PayloadSourcePort,
    deliver_fn: DeliverFn,
) -> None:
    """Deliver payloads from ``source`` until ``stop_event`` is set.

    Repeatedly:
    1. Poll the source for pending payloads.
    2. Deliver them one at a time, in order.
    3. Ack delivered payloads, reject undecodable ones, leave the rest.
    4. When nothing was delivered or rejected, wait ``poll_interval_sec``
       or until stopped.

    Args:
        settings: Runtime configuration (poll interval).
        stop_event: Set when the loop should exit.
        source: Where compressed payloads come from.
        deliver_fn: Delivers one payload stream, usually Dispatcher.deliver.

    Notes:
        - A payload is acked only after a host accepted it. One that was
          interrupted by shutdown or given up on stays in the source.
        - Payloads that are not valid gzip are rejected at once; retrying
          them cannot succeed.
    """
    delivered = 0
    while not stop_event.is_set():
        progressed = False
        for key in source.poll():
            if stop_event.is_set():
                break
            try:
                with source.open(key) as stream:
                    result = await deliver_until_stopped(deliver_fn, stream, stop_event)
            except PayloadDecodeError as e:
                logger.error(f"Payload {key} rejected: {e}")
                source.reject(key)
                progressed = True
                continue
            except DeliveryGiveUpError as e:
                logger.error(f"Payload {key} left for a later attempt: {e}")
                continue
            except FileNotFoundError:
                logger.warning(f"Payload {key} vanished before delivery")
                continue

            if result is None:
                logger.info(f"Delivery of {key} interrupted by shutdown")
                break

            source.ack(key)
            progressed = True
            delivered += 1
            logger.info(
                f"Delivered {key} to {result.host} "
                f"(status {result.status_code}, attempts {result.attempts})"
            )

        if not progressed and not stop_event.is_set():
            await _idle(stop_event, settings.poll_interval_sec)

    logger.info(f"Main loop stopped after {delivered} deliveries")
