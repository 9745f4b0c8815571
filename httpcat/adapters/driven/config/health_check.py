"""Healthcheck validator for container orchestration."""

import logging

from httpcat.adapters.driven.config.settings import load_settings
from httpcat.adapters.driven.logging.logging_config import configure_logs
from httpcat.core.dispatcher import parse_context_path
from httpcat.core.errors import DispatcherConfigError

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main() -> int:
    """Run health check for container orchestration.

    Validates:
    - Required environment variables are set and well-formed.
    - The spool directory exists.
    - The context path parses as a URL reference.

    Returns:
        0 if healthy, 1 if unhealthy.
    """
    configure_logs()

    try:
        settings = load_settings()
        parse_context_path(settings.context_path)
    except (RuntimeError, ValueError, DispatcherConfigError) as exc:
        logger.error(f"Dispatcher healthcheck FAILED: {exc}")
        return 1

    logger.info("Dispatcher healthcheck OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
