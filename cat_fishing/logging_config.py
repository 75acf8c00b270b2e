"""
Logging Configuration
=====================

Single place to set up log output for the simulation and its tools.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
LEVEL_ENV_VAR = "CAT_FISHING_LOG_LEVEL"


def configure_logging(
    *,
    level: Optional[str] = None,
    format: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT,
    extra_loggers: Optional[Iterable[str]] = None,
) -> logging.Logger:
    """
    Configure package logging.

    Args:
        level: Explicit log level. Falls back to CAT_FISHING_LOG_LEVEL, then INFO.
        format: Log format string.
        datefmt: Date format string.
        extra_loggers: Additional logger names to align with the configured level.

    Returns:
        The package logger ("cat_fishing").
    """
    raw_level = level if level is not None else os.getenv(LEVEL_ENV_VAR)
    resolved_level = (raw_level or "INFO").upper()
    logging.basicConfig(level=resolved_level, format=format, datefmt=datefmt)

    package_logger = logging.getLogger("cat_fishing")
    package_logger.setLevel(resolved_level)

    for logger_name in extra_loggers or ():
        logging.getLogger(logger_name).setLevel(resolved_level)

    package_logger.debug("Logging configured at %s", resolved_level)
    return package_logger
