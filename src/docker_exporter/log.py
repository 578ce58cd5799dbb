"""Process logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def parse_level(level: str) -> int:
    """Map a level name to a logging level.

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown log level {level!r}, expected one of: {', '.join(_LEVELS)}"
        ) from None


def configure_logging(level: str = "info", output: str | None = None) -> None:
    """Configure the root logger.

    Args:
        level: Level name, e.g. "info" or "debug".
        output: File to append log lines to. Logs go to stderr if None.
    """
    handler: logging.Handler
    if output:
        handler = logging.FileHandler(output)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=parse_level(level), handlers=[handler], force=True)
