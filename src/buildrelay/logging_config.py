"""Logging configuration for buildrelay."""

import sys
from typing import Optional, TextIO

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    sink: Optional[TextIO] = None,
) -> None:
    """Configure loguru for a run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Emit serialized JSON records instead of text lines.
        sink: Stream to log to. Defaults to stderr, the diagnostic stream.
    """
    logger.remove()
    logger.add(
        sink or sys.stderr,
        format=DEFAULT_FORMAT,
        level=level.upper(),
        colorize=not json_format and sink is None,
        serialize=json_format,
    )
