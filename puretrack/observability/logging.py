"""
Structured logging configuration using structlog.

JSON lines in production, coloured console output in development.
Request ids (API) and run numbers (digest scheduler) are bound as
context variables so every line logged while handling them carries
the same correlation field.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from puretrack.config.settings import get_settings

# Libraries that log every request or connection at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def setup_logging() -> None:
    """
    Configure structlog over stdlib logging for the whole process.

    Modules keep using either ``structlog.get_logger(__name__)`` or
    ``logging.getLogger(__name__)``; both end up in the same renderer.

    Usage:
        setup_logging()
        logger = structlog.get_logger()
        logger.info("Digest sent", digest_id="u1_ph_high_2026-10-17")
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Attach correlation fields (request_id, digest_run) to later log lines."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop every bound correlation field."""
    structlog.contextvars.clear_contextvars()
