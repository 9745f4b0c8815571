"""Bounded retry for one-off HTTP calls such as startup probes."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

import aiohttp

__all__ = ["retry", "RETRYABLE_ERRORS"]

logger = logging.getLogger(__name__)

# Network-level failures: the host may answer on the next try
RETRYABLE_ERRORS = (
    aiohttp.ClientConnectorError,  # Connection refused, DNS failed
    aiohttp.ClientConnectionError,  # Connection dropped, server disconnected
    aiohttp.ClientOSError,  # OS-level network error
    aiohttp.ServerTimeoutError,  # Read/connect timeout
    aiohttp.ClientPayloadError,  # Broken response body
    asyncio.TimeoutError,  # Total request timeout
)

T = TypeVar("T")


def retry(
    times: int = 3,
    delay_sec: tuple[float, ...] = (0.2, 0.5, 1.0),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorate an async call with a fixed number of attempts.

    Only RETRYABLE_ERRORS are retried; anything else propagates at once.
    Payload delivery does not use this: the dispatcher runs its own
    round-robin loop across hosts.

    Args:
        times: Number of attempts (1 = no retry).
        delay_sec: Delays between attempts in seconds; the last one repeats.

    Returns:
        Decorator function.
    """
    if times < 1:
        raise ValueError(f"times must be >= 1 (got: {times})")

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> T:
            for attempt in range(times):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == times - 1:
                        logger.debug(f"Retry exhausted after {times} attempts: {e}")
                        raise
                    delay = delay_sec[min(attempt, len(delay_sec) - 1)]
                    logger.debug(f"Attempt {attempt + 1}/{times} failed ({e}), retrying in {delay}s")
                    await asyncio.sleep(delay)
            raise RuntimeError("Retry wrapper exhausted")

        return wrapper

    return decorator
