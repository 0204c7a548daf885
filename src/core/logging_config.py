"""Structured logging configuration.

This module initializes structlog loggers with a stable JSON format.
Rendered events are handed to the standard logging tree so that the
CLI can route them to stderr and keep stdout for command output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    global _CONFIGURED
    if not _CONFIGURED:
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _CONFIGURED = True
    return structlog.get_logger(name)


def configure_logging(level: int = logging.INFO) -> None:
    """Send rendered log lines to stderr at the given level.

    Args:
        level: Minimum stdlib logging level.
    """
    logging.basicConfig(level=level, stream=sys.stderr, format="%(message)s")
