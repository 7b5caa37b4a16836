"""Logging setup shared by the API process and scripts."""

import logging

from cafeteria.core.config import settings

LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""
    resolved: str = (level or settings.log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)
