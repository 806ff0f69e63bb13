"""Structured logging configuration."""

import logging
import sys

import structlog
from structlog import get_logger

from app.core.config import settings

logger = get_logger()


def setup_logging() -> None:
    """
    Configure structlog for the application.

    - Merges contextvars so request_id bound by RequestIDMiddleware
      appears on every log line
    - Filters by settings.log_level
    - JSON output when settings.log_json is set, console output otherwise
    """
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer: structlog.types.Processor
    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
