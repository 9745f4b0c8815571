"""Application entrypoint."""

import asyncio
import logging

from httpcat.adapters.driven.config.settings import load_settings
from httpcat.adapters.driven.http.client import HttpClient
from httpcat.adapters.driven.logging.logging_config import configure_logs
from httpcat.adapters.driven.metrics.http_metrics import Metrics
from httpcat.adapters.driving.signals import make_stop_event
from httpcat.adapters.driving.spool import SpoolDirectory
from httpcat.core.dispatcher import Dispatcher
from httpcat.core.errors import DispatcherConfigError
from httpcat.core.main_loop import start_main_loop
from httpcat.ports.settings import SettingsPort

__all__ = ["main", "run"]

logger = logging.getLogger(__name__)


async def main() -> None:
    """Start the dispatcher service.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration.
    3. Open the HTTP connection pool and build the dispatcher.
    4. Optionally probe every host.
    5. Drain the spool directory until SIGTERM.
    """
    configure_logs()
    logger.info("Starting httpcat dispatcher...")

    try:
        config = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check TARGET_HOSTS, CONTEXT_PATH, SPOOL_DIR, "
            "EXPECTED_STATUS_CODES and HTTP_HEADERS.",
            exc,
        )
        return

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = SettingsPort(
        hosts=config.hosts,
        context_path=config.context_path,
        method=config.method,
        headers=config.headers,
        expected_status_codes=config.expected_status_codes,
        spool_dir=config.spool_dir,
        poll_interval_sec=config.poll_interval_sec,
        spool_settle_sec=config.spool_settle_sec,
        max_payload_bytes=config.max_payload_bytes or None,
        retry_policy=config.retry_policy(),
        health_check_path=config.health_check_path,
    )

    metrics = Metrics()
    http_client = HttpClient(
        request_timeout_sec=config.request_timeout_sec,
        connection_limit=config.connection_limit,
        keepalive_timeout_sec=config.keepalive_timeout_sec,
    )

    async with http_client as http:
        try:
            dispatcher = Dispatcher(
                hosts=settings_port.hosts,
                context_path=settings_port.context_path,
                method=settings_port.method,
                headers=settings_port.headers,
                expected_status_codes=settings_port.expected_status_codes,
                send_fn=http.send,
                retry_policy=settings_port.retry_policy,
                metrics=metrics,
                max_payload_bytes=settings_port.max_payload_bytes,
            )
        except DispatcherConfigError as exc:
            logger.error(f"Dispatcher configuration error: {exc}")
            return

        if not await optional_hosts_health_check(settings_port, http):
            return

        try:
            await start_main_loop(
                settings=settings_port,
                stop_event=make_stop_event(),
                source=SpoolDirectory(
                    settings_port.spool_dir, settle_sec=settings_port.spool_settle_sec
                ),
                deliver_fn=dispatcher.deliver,
            )
        except Exception as e:
            logger.error(f"Unhandled exception in main loop: {e}", exc_info=True)

        logger.info(f"HTTP metrics: {metrics}")
        logger.info("Dispatcher stopped.")


async def optional_hosts_health_check(settings_port: SettingsPort, http: HttpClient) -> bool:
    """Probe every host before starting delivery.

    Only runs if HEALTH_CHECK_PATH is configured. Unhealthy hosts are
    logged; startup aborts only when none of them is healthy, since
    failover covers the rest.

    Args:
        settings_port: Runtime settings.
        http: HTTP client for probing.

    Returns:
        True if at least one host is healthy or the check is disabled.
    """
    path = settings_port.health_check_path
    if not path:
        return True

    if not path.startswith("/"):
        path = "/" + path

    healthy = []
    for host in settings_port.hosts:
        if await http.probe(url=f"http://{host}{path}"):
            healthy.append(host)
        else:
            logger.warning(f"Host {host} failed health check on {path}")

    if not healthy:
        logger.error(f"Health check failed on every host for {path}, aborting startup")
        return False

    logger.info(f"Health check passed for {healthy}, starting delivery...")
    return True


def run() -> None:
    """Console script entrypoint."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")


if __name__ == "__main__":
    run()
