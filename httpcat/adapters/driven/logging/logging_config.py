"""Console logging setup for the dispatcher."""

import logging
import os

__all__ = ["configure_logs"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"


def configure_logs(level: str | None = None) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at INFO level with a single stream handler.
    - Framework loggers (aiohttp, asyncio) at WARNING level.
    - Application loggers (httpcat) at ``level``, else LOG_LEVEL, else INFO.

    Safe to call more than once; the handler is installed only once.

    Args:
        level: Level name for application loggers.
    """
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    if not any(getattr(h, "_httpcat", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._httpcat = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    app_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if app_level not in logging.getLevelNamesMapping():
        app_level = "INFO"
    logging.getLogger("httpcat").setLevel(app_level)
