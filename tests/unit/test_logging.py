"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from projecttracker.config import LoggingConfig
from projecttracker.logging import (
    add_correlation_id,
    bind_actor_context,
    clear_actor_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    root = logging.getLogger()
    root.handlers.clear()

    structlog.reset_defaults()

    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


@pytest.fixture
def capture_stream() -> StringIO:
    """Create a StringIO stream for capturing log output."""
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    return LoggingConfig(level="INFO", format="json", file=None)


@pytest.fixture
def console_config() -> LoggingConfig:
    return LoggingConfig(level="DEBUG", format="console", file=None)


def _capture(stream: StringIO) -> None:
    # Replace stdout handler stream with the capture stream
    logging.getLogger().handlers[0].stream = stream


def _last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that JSON format produces valid JSON output."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("test.module")
    logger.info("test_event", key1="value1", key2=42)

    log_entry = _last_entry(capture_stream)
    assert log_entry["event"] == "test_event"
    assert log_entry["key1"] == "value1"
    assert log_entry["key2"] == 42
    assert log_entry["level"] == "info"
    assert log_entry["logger"] == "test.module"
    assert "timestamp" in log_entry


def test_console_output_format(console_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that console format produces human-readable output."""
    setup_logging(console_config)
    _capture(capture_stream)

    get_logger("test.module").debug("test_event", status="active")

    output = capture_stream.getvalue()
    assert "test_event" in output
    assert "active" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_log_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that DEBUG is dropped at INFO level."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("test.module")
    logger.debug("debug_message")
    assert capture_stream.getvalue() == ""

    logger.info("info_message")
    assert "info_message" in capture_stream.getvalue()


def test_correlation_id_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that correlation ID is added to log entries while set."""
    setup_logging(json_config)
    _capture(capture_stream)
    logger = get_logger("test.module")

    set_correlation_id("corr-12345")
    assert get_correlation_id() == "corr-12345"
    logger.info("test_with_correlation")
    assert _last_entry(capture_stream)["correlation_id"] == "corr-12345"

    set_correlation_id(None)
    logger.info("test_without_correlation")
    assert "correlation_id" not in _last_entry(capture_stream)


def test_correlation_id_processor() -> None:
    event_dict: dict[str, Any] = {"event": "test"}

    result = add_correlation_id(None, "", event_dict.copy())
    assert "correlation_id" not in result

    set_correlation_id("test-id")
    result = add_correlation_id(None, "", event_dict.copy())
    assert result["correlation_id"] == "test-id"


def test_actor_context_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that the actor is bound to every logger until cleared."""
    setup_logging(json_config)
    _capture(capture_stream)

    bind_actor_context("alice")
    get_logger("module1").info("event1")
    assert _last_entry(capture_stream)["actor"] == "alice"

    get_logger("module2").info("event2")
    assert _last_entry(capture_stream)["actor"] == "alice"

    clear_actor_context()
    get_logger("module1").info("event3")
    assert "actor" not in _last_entry(capture_stream)


def test_clear_actor_context_without_binding() -> None:
    clear_actor_context()
    assert "actor" not in structlog.contextvars.get_contextvars()


def test_file_rotation_handler_configuration(tmp_path: Path) -> None:
    """Test that file rotation handler is configured from config."""
    log_file = tmp_path / "logs" / "tracker.log"
    config = LoggingConfig(
        level="INFO",
        format="json",
        file=log_file,
        rotation_size_mb=10,
        retention_count=3,
    )

    setup_logging(config)

    assert log_file.exists()
    root = logging.getLogger()
    assert len(root.handlers) == 1
    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    get_logger("test.module").info("test_file_write", data="test")
    handler.flush()

    log_entry = json.loads(log_file.read_text().strip())
    assert log_entry["event"] == "test_file_write"
    assert log_entry["data"] == "test"


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that exc_info renders the traceback into the entry."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("projecttracker.services.base")
    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.error("database_operation_failed", exc_info=True)

    log_entry = _last_entry(capture_stream)
    assert log_entry["event"] == "database_operation_failed"
    assert log_entry["level"] == "error"
    assert log_entry["logger"] == "projecttracker.services.base"
    assert "ValueError: Test exception" in log_entry["exception"]
