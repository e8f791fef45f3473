"""Structured logging configuration for Catalyst.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Request IDs tying log lines to one generation or refinement call, scoped
  with request_context() so overlapping calls restore the outer ID
- Project and phase context binding, re-bound whenever a workspace changes
  phase or project (see Workspace)

The logging system integrates structlog with Python's stdlib logging
for handlers (file rotation), while using structlog exclusively for
actual log emission.

Example usage:
    >>> from catalyst.config import LoggingConfig
    >>> from catalyst.logging import setup_logging, get_logger, bind_project_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_project_context(project_id="a1b2", phase="Architecture")
    >>> logger.info("phase_generated", artifact="data_schema")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from catalyst.config import LoggingConfig

# Keys bound by bind_project_context
PROJECT_CONTEXT_KEYS = ("project_id", "phase")

# Context variable for the in-flight generation request
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def add_request_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add request_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with request_id added if available
    """
    request_id = _request_id.get()
    if request_id is not None:
        event_dict["request_id"] = request_id
    return event_dict


def set_request_id(request_id: str | None) -> None:
    """Set request ID for current context.

    Args:
        request_id: Request ID string or None to clear
    """
    _request_id.set(request_id)


def get_request_id() -> str | None:
    """Get current request ID from context."""
    return _request_id.get()


@contextmanager
def request_context(request_id: str) -> Iterator[str]:
    """Bind ``request_id`` for the duration of the block.

    The previous value is restored on exit, so a request started while
    another is in flight does not clear the outer request's ID.

    Args:
        request_id: ID of the generation, refinement or assistance call

    Yields:
        The bound request ID
    """
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


def bind_project_context(project_id: str, phase: str) -> None:
    """Bind project and phase context to all subsequent logs.

    Args:
        project_id: Project identifier to bind
        phase: Current workflow phase to bind
    """
    structlog.contextvars.bind_contextvars(project_id=project_id, phase=phase)


def clear_project_context() -> None:
    """Remove project and phase context bound by bind_project_context."""
    structlog.contextvars.unbind_contextvars(*PROJECT_CONTEXT_KEYS)


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Output goes to stderr (or a rotating file) so that CLI output on
    stdout stays clean.

    Args:
        config: Logging configuration from CatalystConfig
    """
    log_level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:  # console
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_request_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
