"""
Logging setup for the gallery service and client.

structlog on top of the standard library logger, rendering to the console
in dev/local and to JSON lines elsewhere.
"""

import logging
import sys
from typing import Any

import structlog

from gallery.config import settings

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(name: str | None = None) -> int:
    """Map a level name (default: settings.LOG_LEVEL) to a logging constant."""
    level_name = (name or settings.LOG_LEVEL).upper()
    return LEVELS.get(level_name, logging.INFO)


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog for the whole process.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL
        json_output: Force JSON rendering; defaults to True outside dev/local
    """
    log_level = get_log_level(level)
    if json_output is None:
        json_output = not settings.is_local

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stderr,
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(log_level)

    structlog.get_logger("gallery.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment=settings.ENV,
        json=json_output,
    )
