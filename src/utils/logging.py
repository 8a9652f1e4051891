"""Structured logging shared by the ingestion and conversation packages.

Every module obtains its logger through ``get_logger(__name__)`` and emits
snake_case event names with keyword context, rendered as JSON lines.
"""

import logging
import os
import sys

import structlog

_configured = False


def _configure(level_name: str) -> None:
    """Configure structlog and the stdlib root handler exactly once."""
    global _configured

    level = getattr(logging, level_name.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to ``name``.

    The log level is read from ``LOG_LEVEL`` (default ``INFO``) the first time
    any logger is requested.

    Args:
        name: Logger name, usually ``__name__`` of the calling module.

    Returns:
        Configured structlog logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("chunks_upserted", count=12, video_id="abc123")
    """
    if not _configured:
        _configure(os.getenv("LOG_LEVEL", "INFO"))

    return structlog.get_logger(name)
