"""Logging configuration for the vaccination dashboard.

One stderr sink whose level follows the CLI verbosity flags, plus an
optional file sink that always records DEBUG (coercion counters, year
fallbacks) for later inspection of a data refresh.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

# verbosity -> (level, format)
_CONSOLE_FORMATS = {
    -1: ("WARNING", "{level}: {message}"),
    0: ("INFO", "{message}"),
    1: ("DEBUG", "{time:HH:mm:ss} | {level:<7} | {name}:{function} | {message}"),
}

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:<7} | {name}:{line} | {message}"


def configure_logging(verbosity: int = 0, log_file: str | Path | None = None) -> None:
    """Configure loguru sinks.

    Args:
        verbosity: 0 = INFO (default), 1 = DEBUG (verbose), -1 = WARNING (quiet)
        log_file: Also write DEBUG records to this file
    """
    logger.remove()

    level, fmt = _CONSOLE_FORMATS[max(-1, min(1, verbosity))]
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file is not None:
        logger.add(
            log_file, level="DEBUG", format=FILE_FORMAT, encoding="utf-8", mode="w"
        )
