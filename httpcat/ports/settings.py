"""Settings port definition (DTO)."""

from dataclasses import dataclass, field

from httpcat.core.retry_policy import RetryPolicy

__all__ = ["SettingsPort"]


@dataclass
class SettingsPort:
    """Runtime settings for the dispatcher and the main loop.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        hosts: Destination hosts, tried in round-robin order.
        context_path: Path (and optional query) shared by every host.
        method: HTTP method shared by every host.
        headers: Header name to list of values sent with every request.
        expected_status_codes: Status codes that count as delivered.
        spool_dir: Directory the payload source reads from.
        poll_interval_sec: Idle wait between polls of an empty source.
        spool_settle_sec: Seconds a spool file must sit unmodified before
            it is picked up.
        max_payload_bytes: Largest decompressed payload; None for no limit.
        retry_policy: Backoff and give-up rules for one payload.
        health_check_path: Optional path probed on every host at startup.
    """

    hosts: list[str]
    context_path: str
    method: str = "POST"
    headers: dict[str, list[str]] = field(default_factory=dict)
    expected_status_codes: list[int] = field(default_factory=lambda: [200, 201, 202, 204])
    spool_dir: str = "."
    poll_interval_sec: float = 1.0
    spool_settle_sec: float = 2.0
    max_payload_bytes: int | None = None
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    health_check_path: str | None = None
