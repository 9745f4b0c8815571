"""Round-robin HTTP dispatcher for gzip-compressed payloads."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import BinaryIO

from yarl import URL

from httpcat.core.errors import (
    DeliveryError,
    DeliveryGiveUpError,
    DispatcherConfigError,
    UnexpectedStatusError,
)
from httpcat.core.host_ring import HostRing
from httpcat.core.payload import decode_gzip_payload
from httpcat.core.retry_policy import RetryPolicy
from httpcat.ports.http import HttpRequestDto
from httpcat.ports.metrics import HttpAttemptDto, MetricsPort

__all__ = ["Dispatcher", "DeliveryResult", "SendFn", "get_now_time", "normalize_method"]

logger = logging.getLogger(__name__)

SendFn = Callable[[HttpRequestDto], Awaitable[int]]

_FORBIDDEN_PATH_CHARS = re.compile(r"[\x00-\x20\x7f]")
_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Z]+$")


def get_now_time() -> float:
    """Get current monotonic time in seconds from the running event loop."""
    return asyncio.get_running_loop().time()


def normalize_method(method: str) -> str:
    """Upper-case an HTTP method and check it is a valid request token.

    Extension methods such as ``M-SEARCH`` are accepted.

    Raises:
        DispatcherConfigError: If the method is blank or not a token.
    """
    normalized = (method or "").strip().upper()
    if not _METHOD_TOKEN.match(normalized):
        raise DispatcherConfigError(f"Invalid HTTP method: {normalized!r}")
    return normalized


@dataclass(slots=True, frozen=True)
class DeliveryResult:
    """Outcome of a successful delivery.

    Attributes:
        host: Host that accepted the payload.
        status_code: Status code it answered with.
        attempts: Attempts made, including the successful one.
        elapsed_sec: Seconds spent in the retry loop.
    """

    host: str
    status_code: int
    attempts: int
    elapsed_sec: float


def parse_context_path(context_path: str) -> URL:
    """Parse the shared context path into a relative URL template.

    Absolute URLs are accepted; their scheme and authority are dropped
    since every attempt substitutes its own host and plain http.

    Raises:
        DispatcherConfigError: If the path is not a parsable URL reference.
    """
    if not isinstance(context_path, str):
        raise DispatcherConfigError(f"Unable to parse context path: {context_path!r}")
    if _FORBIDDEN_PATH_CHARS.search(context_path):
        raise DispatcherConfigError(
            f"Unable to parse context path: control or space character in {context_path!r}"
        )
    try:
        parsed = URL(context_path)
    except (ValueError, TypeError) as e:
        raise DispatcherConfigError(f"Unable to parse context path: {e}") from e

    path = parsed.raw_path or "/"
    if not path.startswith("/"):
        path = "/" + path
    return URL.build(
        path=path,
        query_string=parsed.raw_query_string,
        encoded=True,
    )


class Dispatcher:
    """Deliver payloads to one of several hosts with round-robin failover.

    Every host shares the same context path, method and headers; only the
    destination changes between attempts. A failed attempt (transport
    error or a status outside the success set) rotates to the next host
    and retries. With the default RetryPolicy the loop never gives up.

    One instance is reused across many payloads: the cursor carries the
    round-robin position from one delivery to the next.
    """

    def __init__(
        self,
        hosts: Sequence[str],
        context_path: str,
        method: str,
        headers: Mapping[str, Sequence[str]] | None,
        expected_status_codes: Iterable[int],
        *,
        send_fn: SendFn,
        retry_policy: RetryPolicy | None = None,
        metrics: MetricsPort | None = None,
        start: int | None = None,
        max_payload_bytes: int | None = None,
    ) -> None:
        """Validate configuration and pick the initial host.

        Args:
            hosts: Non-empty list of ``host[:port]`` strings.
            context_path: URL path (and optional query) sent to every host.
            method: HTTP method.
            headers: Header name to ordered list of values.
            expected_status_codes: Status codes that mark a delivery as done.
            send_fn: Performs one HTTP exchange and returns the status code,
                raising TransportError on network failure.
            retry_policy: Backoff and give-up rules. Defaults to retry forever.
            metrics: Optional collector updated after every attempt.
            start: Initial cursor; random when omitted.
            max_payload_bytes: Largest decompressed body accepted; unlimited
                when None.

        Raises:
            DispatcherConfigError: On an empty host list, an unparsable
                context path, an invalid method, an empty success set or a
                non-positive payload limit.
        """
        self._ring = HostRing(hosts, start=start)
        self._url_template = parse_context_path(context_path)

        self._method = normalize_method(method)

        self._headers: dict[str, tuple[str, ...]] = {
            name: tuple(values) for name, values in (headers or {}).items()
        }

        self._expected_status_codes = frozenset(int(code) for code in expected_status_codes)
        if not self._expected_status_codes:
            raise DispatcherConfigError("Need at least one expected response code.")

        self._send_fn = send_fn
        self._retry_policy = retry_policy or RetryPolicy()
        self._metrics = metrics

        if max_payload_bytes is not None and max_payload_bytes <= 0:
            raise DispatcherConfigError(f"Invalid payload size limit: {max_payload_bytes}")
        self._max_payload_bytes = max_payload_bytes

        logger.info(
            f"Dispatcher configured: hosts={list(self._ring.hosts)}, "
            f"{self._method} {self._url_template.raw_path_qs}, "
            f"success={sorted(self._expected_status_codes)}, "
            f"first host={self._ring.current()[1]}"
        )

    @property
    def hosts(self) -> tuple[str, ...]:
        return self._ring.hosts

    @property
    def cursor(self) -> int:
        return self._ring.cursor

    @property
    def expected_status_codes(self) -> frozenset[int]:
        return self._expected_status_codes

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def build_request(self, host: str, body: bytes) -> HttpRequestDto:
        """Apply the shared request template to one host."""
        url = URL.build(
            scheme="http",
            authority=host,
            path=self._url_template.raw_path,
            query_string=self._url_template.raw_query_string,
            encoded=True,
        )
        return HttpRequestDto(
            host=host,
            method=self._method,
            url=str(url),
            headers=self._headers,
            body=body,
        )

    async def send_once(self, host: str, body: bytes) -> int:
        """Make exactly one attempt against ``host``.

        Does not touch the cursor.

        Returns:
            Status code of the accepted response.

        Raises:
            TransportError: If the request never got a response.
            UnexpectedStatusError: If the status is not in the success set.
        """
        req = self.build_request(host, body)
        started = get_now_time()
        status: int | None = None
        try:
            status = await self._send_fn(req)
        finally:
            if self._metrics is not None:
                self._metrics.update(
                    HttpAttemptDto(
                        host=host,
                        started_at_sec=started,
                        finished_at_sec=get_now_time(),
                        is_failed=status not in self._expected_status_codes,
                        status_code=status,
                    )
                )

        if status not in self._expected_status_codes:
            raise UnexpectedStatusError(host, status)
        return status

    async def deliver(self, stream: BinaryIO) -> DeliveryResult:
        """Decompress a payload and deliver it, failing over between hosts.

        Args:
            stream: Gzip-compressed payload. Borrowed: read, never closed.

        Returns:
            Which host accepted the payload and after how many attempts.

        Raises:
            PayloadDecodeError: If the stream is not valid gzip or inflates
                past the payload limit. Raised before any network attempt;
                the cursor is left untouched.
            DeliveryGiveUpError: If the retry policy has a ceiling and it
                was reached.
        """
        body = await asyncio.to_thread(decode_gzip_payload, stream, self._max_payload_bytes)

        started = get_now_time()
        failures = 0
        while True:
            index, host = self._ring.current()
            try:
                status = await self.send_once(host, body)
            except DeliveryError as e:
                failures += 1
                next_index = self._ring.record_failure(index)
                elapsed = get_now_time() - started
                logger.warning(
                    f"Payload not sent to {host} (attempt {failures}): {e}; "
                    f"next host {self._ring.hosts[next_index]}"
                )

                if self._retry_policy.exhausted(failures, elapsed):
                    raise DeliveryGiveUpError(failures, elapsed, e) from e

                delay = self._retry_policy.delay_for(failures)
                if delay > 0:
                    await asyncio.sleep(delay)
                continue

            elapsed = get_now_time() - started
            logger.debug(
                f"Payload of {len(body)} bytes delivered to {host} "
                f"(status {status}, attempts {failures + 1}, {elapsed:.3f}s)"
            )
            return DeliveryResult(
                host=host,
                status_code=status,
                attempts=failures + 1,
                elapsed_sec=elapsed,
            )
