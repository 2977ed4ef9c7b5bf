"""Logging configuration using loguru."""
from __future__ import annotations

import sys

from loguru import logger

FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {message}"


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=FORMAT)
    if log_file:
        logger.add(log_file, level=level.upper(), rotation="5 MB", retention="7 days", backtrace=False, diagnose=False)
