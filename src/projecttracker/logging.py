"""Structured logging configuration for Project Tracker.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Correlation IDs for request tracing
- Actor context binding, so every log line of a request names who acted

The logging system integrates structlog with Python's stdlib logging
for handlers (file rotation), while using structlog exclusively for
actual log emission.

Example usage:
    >>> from projecttracker.config import LoggingConfig
    >>> from projecttracker.logging import setup_logging, get_logger, bind_actor_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_actor_context("alice")
    >>> logger.info("project_created", project_id=12)
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from projecttracker.config import LoggingConfig

# Context variable for correlation ID
_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with correlation_id added if available
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def bind_actor_context(actor_name: str) -> None:
    """Bind the acting user's name to all subsequent logs in this context.

    Args:
        actor_name: Actor identifier supplied by the identity provider
    """
    structlog.contextvars.bind_contextvars(actor=actor_name)


def clear_actor_context() -> None:
    """Remove the actor binding from the current context."""
    structlog.contextvars.unbind_contextvars("actor")


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Sets up the logging pipeline:
    - JSON or console rendering based on config.format
    - File rotation if config.file is specified
    - Timestamp, log level, and logger name processors
    - Correlation ID processor

    Args:
        config: Logging configuration from ProjectTrackerConfig
    """
    # Convert log level string to logging constant
    log_level = getattr(logging, config.level)

    # Configure stdlib logging root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # Create appropriate handler
    if config.file is not None:
        # Ensure parent directory exists
        config.file.parent.mkdir(parents=True, exist_ok=True)

        # File handler with rotation
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,  # Convert MB to bytes
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        # Stream handler to stdout
        handler = logging.StreamHandler(sys.stdout)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    # Choose renderer based on format
    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:  # console
        renderer = structlog.dev.ConsoleRenderer()

    # Configure structlog with complete processor chain
    structlog.configure(
        processors=[
            # Add log level to event dict
            structlog.stdlib.add_log_level,
            # Add logger name to event dict
            structlog.stdlib.add_logger_name,
            # Add timestamp in ISO format
            structlog.processors.TimeStamper(fmt="iso"),
            # Add contextvars (actor from bind_actor_context)
            structlog.contextvars.merge_contextvars,
            # Add correlation ID if present
            add_correlation_id,
            # Stack info and exception formatting
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            # Final rendering
            renderer,
        ],
        # Wrap stdlib logger for compatibility
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Cache logger instances
        cache_logger_on_first_use=True,
        context_class=dict,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
