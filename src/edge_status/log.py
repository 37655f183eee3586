"""Logging setup."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Replace loguru's default sink with stderr and an optional rotating file."""
    logger.remove()
    # sys.stderr is looked up per message; test runners swap it out
    logger.add(lambda message: sys.stderr.write(message), level=level.upper(), format=LOG_FORMAT)
    if log_file:
        logger.add(log_file, level=level.upper(), format=LOG_FORMAT, rotation="00:00", retention="7 days")
