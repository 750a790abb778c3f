"""Logging configuration shared by all bounded contexts."""

import logging
import sys

import structlog


def configure_logging(level="INFO", json=False):
    """Route structlog through a single processor chain.

    Modules obtain loggers with ``structlog.get_logger(__name__)`` and log
    key/value pairs; this function only decides how they are rendered.
    """
    log_level = logging.getLevelName(level.upper()) if isinstance(level, str) else level

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy library loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
