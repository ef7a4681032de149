"""
ebdeploy logging - structured logging for deployment runs.

Every stage of a deployment emits a progress event on start and an
acknowledgement on success. Events are structlog key/value records, so
the same run renders as colored console lines on a developer terminal
and as JSON lines when the task runs under CI.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="ebdeploy")
            ↓
        processor chain:
          1. TimeStamper(fmt="iso")
          2. merge_contextvars      (run_id, application bound by LogContext)
          3. add_log_level
          4. add_service_metadata
          5. JSONRenderer (non-TTY) or ConsoleRenderer (TTY)

Examples:
    >>> from ebdeploy.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.info("stage.started", stage="upload_bundle")

Tags:
    logging, structlog, observability, ebdeploy
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "ebdeploy"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "ebdeploy",
) -> None:
    """Configure structured logging for a deployment run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs

    Raises:
        ValueError: If level is not a standard level name
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Invalid log level {level!r}, expected one of {', '.join(LOG_LEVELS)}")
    level_no = getattr(logging, level)

    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # boto3/botocore/httpx log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level_no,
    )
    for noisy in ("botocore", "boto3", "urllib3", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(logging.WARNING, level_no))


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        async with LogContext(run_id="abc123", application="my-app"):
            logger.info("stage.started", stage="upload_bundle")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "LOG_LEVELS",
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
