"""Configuration loading from environment variables."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from httpcat.core.dispatcher import normalize_method
from httpcat.core.retry_policy import DEFAULT_BACKOFF_AFTER, DEFAULT_BACKOFF_SEC, RetryPolicy

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_EXPECTED_STATUS_CODES = "200,201,202,204"
DEFAULT_MAX_PAYLOAD_BYTES = 64 * 1024 * 1024


class Settings(BaseModel):
    """Runtime configuration for the dispatcher service.

    Attributes:
        hosts: Destination hosts (``host`` or ``host:port``), at least one.
        context_path: Path (and optional query) shared by every host.
        method: HTTP method shared by every host.
        headers: Header name to list of values.
        expected_status_codes: Status codes that count as delivered.
        spool_dir: Directory holding gzip payloads to deliver.
        poll_interval_sec: Idle wait between spool polls.
        spool_settle_sec: Age a spool file must reach before it is picked up.
        max_payload_bytes: Largest decompressed payload (0 = unlimited).
        request_timeout_sec: Total timeout of one HTTP attempt.
        connection_limit: Max pooled connections (0 = unlimited).
        keepalive_timeout_sec: Idle time before a pooled connection closes.
        backoff_after: Failures of one payload before each retry is delayed.
        backoff_sec: Delay applied once backoff_after is reached.
        max_attempts: Attempts per payload before giving up (0 = never give up).
        max_elapsed_sec: Seconds per payload before giving up (0 = never give up).
        health_check_path: Optional path probed on every host at startup.
    """

    hosts: list[str] = Field(..., min_length=1, description="Destination hosts.")
    context_path: str = Field(..., min_length=1, description="Path shared by every host.")
    method: str = Field(default="POST", description="HTTP method.")
    headers: dict[str, list[str]] = Field(default_factory=dict)
    expected_status_codes: list[int] = Field(
        default_factory=lambda: [200, 201, 202, 204], min_length=1
    )
    spool_dir: str = Field(..., description="Directory holding gzip payloads.")
    poll_interval_sec: float = Field(default=1.0, gt=0)
    spool_settle_sec: float = Field(default=2.0, ge=0)
    max_payload_bytes: int = Field(default=DEFAULT_MAX_PAYLOAD_BYTES, ge=0)
    request_timeout_sec: float = Field(default=30.0, gt=0)
    connection_limit: int = Field(default=100, ge=0)
    keepalive_timeout_sec: float = Field(default=15.0, gt=0)
    backoff_after: int = Field(default=DEFAULT_BACKOFF_AFTER, ge=0)
    backoff_sec: float = Field(default=DEFAULT_BACKOFF_SEC, ge=0)
    max_attempts: int = Field(default=0, ge=0)
    max_elapsed_sec: float = Field(default=0, ge=0)
    health_check_path: str | None = None

    @field_validator("hosts", mode="before")
    @classmethod
    def split_hosts(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list.

        Raises:
            ValueError: If an entry is blank or carries a scheme.
        """
        if isinstance(v, str):
            v = [h.strip() for h in v.split(",") if h.strip()]
        for host in v:
            if not isinstance(host, str) or not host.strip():
                raise ValueError("Host entries must be non-empty strings")
            if "://" in host or "/" in host:
                raise ValueError(f"Host must be host[:port] without scheme or path (got: {host})")
        return v

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Upper-case the method; any request token is accepted."""
        return normalize_method(v)

    @field_validator("headers", mode="before")
    @classmethod
    def parse_headers(cls, v: Any) -> Any:
        """Accept a JSON object whose values are strings or lists of strings.

        Raises:
            ValueError: If the JSON is invalid or not an object.
        """
        if isinstance(v, str):
            try:
                v = json.loads(v) if v.strip() else {}
            except json.JSONDecodeError as e:
                raise ValueError(f"HTTP_HEADERS contains invalid JSON: {e}") from e
        if not isinstance(v, dict):
            raise ValueError("HTTP_HEADERS must be a JSON object")
        return {name: [values] if isinstance(values, str) else values for name, values in v.items()}

    @field_validator("expected_status_codes", mode="before")
    @classmethod
    def split_status_codes(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            v = [c.strip() for c in v.split(",") if c.strip()]
        return v

    @field_validator("expected_status_codes")
    @classmethod
    def validate_status_codes(cls, v: list[int]) -> list[int]:
        """Reject codes outside the HTTP status range.

        Raises:
            ValueError: If a code is not between 100 and 599.
        """
        bad = [c for c in v if not 100 <= c <= 599]
        if bad:
            raise ValueError(f"Invalid HTTP status codes: {bad}")
        return v

    @model_validator(mode="after")
    def validate_spool_dir(self) -> "Settings":
        """Ensure the spool directory exists.

        Raises:
            ValueError: If the path is missing or not a directory.
        """
        if not Path(self.spool_dir).is_dir():
            raise ValueError(f"Spool directory not found: {self.spool_dir}")
        return self

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy; zero ceilings mean retry forever."""
        return RetryPolicy(
            backoff_after=self.backoff_after,
            backoff_sec=self.backoff_sec,
            max_attempts=self.max_attempts or None,
            max_elapsed_sec=self.max_elapsed_sec or None,
        )


def _optional(name: str, field: str, values: dict[str, Any]) -> None:
    raw = os.getenv(name)
    if raw is not None and raw.strip():
        values[field] = raw.strip()


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Required environment variables:
    - TARGET_HOSTS: Comma-separated ``host[:port]`` list.
    - CONTEXT_PATH: URL path sent to every host.
    - SPOOL_DIR: Directory holding gzip payloads.

    Optional: HTTP_METHOD, HTTP_HEADERS, EXPECTED_STATUS_CODES,
    POLL_INTERVAL_SECONDS, SPOOL_SETTLE_SECONDS, MAX_PAYLOAD_BYTES,
    REQUEST_TIMEOUT_SECONDS, CONNECTION_LIMIT,
    KEEPALIVE_TIMEOUT_SECONDS, BACKOFF_AFTER_FAILURES, BACKOFF_SECONDS,
    MAX_ATTEMPTS, MAX_ELAPSED_SECONDS, HEALTH_CHECK_PATH.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If required env vars are missing.
        ValueError: If configuration is invalid.
    """
    try:
        values: dict[str, Any] = {
            "hosts": os.environ["TARGET_HOSTS"],
            "context_path": os.environ["CONTEXT_PATH"],
            "spool_dir": os.environ["SPOOL_DIR"],
        }
    except KeyError as e:
        raise RuntimeError(f"Missing required environment variable: {e.args[0]}") from e

    _optional("HTTP_METHOD", "method", values)
    _optional("HTTP_HEADERS", "headers", values)
    _optional("POLL_INTERVAL_SECONDS", "poll_interval_sec", values)
    _optional("SPOOL_SETTLE_SECONDS", "spool_settle_sec", values)
    _optional("MAX_PAYLOAD_BYTES", "max_payload_bytes", values)
    _optional("REQUEST_TIMEOUT_SECONDS", "request_timeout_sec", values)
    _optional("CONNECTION_LIMIT", "connection_limit", values)
    _optional("KEEPALIVE_TIMEOUT_SECONDS", "keepalive_timeout_sec", values)
    _optional("BACKOFF_AFTER_FAILURES", "backoff_after", values)
    _optional("BACKOFF_SECONDS", "backoff_sec", values)
    _optional("MAX_ATTEMPTS", "max_attempts", values)
    _optional("MAX_ELAPSED_SECONDS", "max_elapsed_sec", values)
    _optional("HEALTH_CHECK_PATH", "health_check_path", values)
    values["expected_status_codes"] = os.getenv(
        "EXPECTED_STATUS_CODES", DEFAULT_EXPECTED_STATUS_CODES
    )

    settings = Settings(**values)

    logger.info(
        f"Dispatcher service configured: hosts={settings.hosts}, "
        f"{settings.method} {settings.context_path}, "
        f"success={settings.expected_status_codes}, "
        f"spool={settings.spool_dir}, "
        f"max_attempts={settings.max_attempts or 'unbounded'}, "
        f"health_check={settings.health_check_path or '<disabled>'}"
    )

    return settings
