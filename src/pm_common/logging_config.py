"""Root logger setup for processes embedding the economy.

Log format:
    2026-01-01 12:00:00,000 INFO [src.pm_economy.domain.economy] Market created: id=0 ...
"""

import logging

from config.settings import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Apply LOG_LEVEL (or an explicit level) to the root logger.

    DEBUG=True in settings forces DEBUG level so individual trades are logged.
    """
    resolved = level or ("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
    logging.basicConfig(level=resolved.upper(), format=_FORMAT, force=True)
    logging.getLogger(__name__).debug("Logging configured at %s", resolved.upper())
