"""aiohttp transport for delivery attempts and health probes."""

import asyncio
import logging
from types import TracebackType

import aiohttp
from aiohttp import ClientResponse, ClientTimeout, TCPConnector
from multidict import CIMultiDict

from httpcat.adapters.driven.http.retry import retry
from httpcat.core.errors import TransportError
from httpcat.ports.http import HttpRequestDto

__all__ = ["HttpClient", "TRANSPORT_ERRORS"]

logger = logging.getLogger(__name__)

PROBE_RETRIES = 5
PROBE_TIMEOUT = 10
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_CONNECTION_LIMIT = 100
DEFAULT_KEEPALIVE_TIMEOUT = 15.0

# Anything that prevents a response from arriving
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class HttpClient:
    """One pooled HTTP client shared by every destination host.

    Only the destination varies per request; connections to each host
    are kept alive and reused by the connector.

    Features:
    - Explicit pool lifecycle (async context manager) and limits.
    - Transport failures surfaced as TransportError for the dispatcher.
    - Health probe with bounded retry.
    """

    def __init__(
        self,
        *,
        request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT,
        connection_limit: int = DEFAULT_CONNECTION_LIMIT,
        keepalive_timeout_sec: float = DEFAULT_KEEPALIVE_TIMEOUT,
    ) -> None:
        """Initialize HTTP client.

        Args:
            request_timeout_sec: Total timeout for one request.
            connection_limit: Max simultaneous connections (0 = unlimited).
            keepalive_timeout_sec: How long idle connections stay pooled.
        """
        self.request_timeout_sec = request_timeout_sec
        self.connection_limit = connection_limit
        self.keepalive_timeout_sec = keepalive_timeout_sec
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpClient":
        """Open the connection pool.

        Returns:
            Self for use in async with statement.
        """
        connector = TCPConnector(
            limit=self.connection_limit,
            keepalive_timeout=self.keepalive_timeout_sec,
            force_close=False,
        )
        self.session = aiohttp.ClientSession(
            connector=connector,
            timeout=ClientTimeout(total=self.request_timeout_sec),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the connection pool."""
        if self.session:
            await self.session.close()
            self.session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")
        return self.session

    async def send(self, req: HttpRequestDto) -> int:
        """Send one delivery attempt.

        The response body is read and discarded so the connection can
        go back to the pool.

        Args:
            req: Fully built request for one host.

        Returns:
            HTTP status code.

        Raises:
            TransportError: On connection, timeout or other network errors.
            RuntimeError: If session not initialized.
        """
        session = self._require_session()
        headers = CIMultiDict(
            (name, value) for name, values in req.headers.items() for value in values
        )
        try:
            resp = await session.request(req.method, req.url, data=req.body, headers=headers)
            await resp.read()
        except TRANSPORT_ERRORS as e:
            raise TransportError(req.host, f"{type(e).__name__}: {e}") from e

        logger.debug(f"{req.method} {req.url} -> {resp.status}")
        return resp.status

    @retry(times=PROBE_RETRIES)
    async def _probe_once(self, url: str, timeout: int = PROBE_TIMEOUT) -> ClientResponse:
        """Single HTTP GET request for health check (with retry).

        The body is drained so the connection goes back to the pool.

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors (retried by decorator).
        """
        session = self._require_session()
        resp = await session.get(url, timeout=ClientTimeout(total=timeout), allow_redirects=True)
        await resp.read()
        return resp

    async def probe(self, url: str, timeout: int = PROBE_TIMEOUT) -> bool:
        """Check if HTTP endpoint is reachable.

        Attempts up to PROBE_RETRIES times with exponential backoff.

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            True if reachable (200 <= status < 300), False otherwise.
        """
        logger.info(f"Probing endpoint {url}...")
        try:
            resp = await self._probe_once(url, timeout)
        except Exception as e:
            logger.warning(f"Probe failed for {url}: {e}")
            return False

        logger.info(f"Probe for {url} returned status {resp.status}")
        return 200 <= resp.status < 300
