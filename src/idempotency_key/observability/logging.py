"""Structured logging configuration for idempotency middleware.

Logs are emitted through structlog so that every event carries its context
as key-value pairs rather than interpolated text. Events use a dotted
``component.outcome`` naming scheme:

- ``request.bypassed`` / ``request.executed``
- ``lock.acquired`` / ``lock.released`` / ``lock.conflict``
- ``cache.hit`` / ``cache.stored`` / ``cache.skipped``
- ``storage.error``

Request fingerprints are logged; raw Authorization headers never are.

Examples:
    Configure logging once at startup::

        from idempotency_key.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Log from a module::

        from idempotency_key.observability.logging import get_logger

        logger = get_logger(__name__)
        logger.info("cache.hit", fingerprint=fingerprint, status=201)

    Output (JSON)::

        {"fingerprint": "3d5b...", "status": 201, "event": "cache.hit",
         "level": "info", "timestamp": "2024-01-01T00:00:00.000000Z"}
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, emit JSON logs; if False, use console format

    Examples:
        >>> configure_logging(level="DEBUG", json_output=False)
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors: list[object] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        A structlog logger instance
    """
    return structlog.get_logger(name)
