"""Structured logging configuration.

This module initializes structlog with a stable JSON format on stderr.
Decoders log notices for skipped records; stdout stays reserved for output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL
from core.errors import ExplorerConfigError

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level_name: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure structlog processors and the minimum level.

    Args:
        level_name: One of debug, info, warning, error.

    Raises:
        ExplorerConfigError: If the level name is unknown.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(parse_log_level(level_name)),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)


def parse_log_level(level_name: str) -> int:
    """Translate a level name into a stdlib logging level.

    Args:
        level_name: Case-insensitive level name.

    Returns:
        Numeric logging level.

    Raises:
        ExplorerConfigError: If the level name is unknown.
    """
    level = _LEVELS.get(level_name.strip().lower())
    if level is None:
        raise ExplorerConfigError(
            f"Invalid log level '{level_name}': expected one of "
            f"{', '.join(sorted(_LEVELS))}."
        )
    return level


def _stderr_logger(*_args: Any) -> Any:
    """Bind to the current stderr so redirected streams are honoured."""
    return structlog.PrintLogger(file=sys.stderr)
