"""Tests for JSON structured logging."""
import json
import logging
import sys


def _record(name: str = "test-service", level: int = logging.INFO, msg: str = "test message", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


def test_json_formatter_outputs_valid_json() -> None:
    """JSONFormatter should produce valid JSON output."""
    from persona_studio.core.logging import JSONFormatter

    output = JSONFormatter().format(_record())
    assert isinstance(json.loads(output), dict)


def test_json_formatter_has_required_fields() -> None:
    """Log output must contain timestamp, level, service, message fields."""
    from persona_studio.core.logging import JSONFormatter

    output = JSONFormatter().format(
        _record(name="my-service", level=logging.WARNING, msg="something happened")
    )
    parsed = json.loads(output)

    assert "timestamp" in parsed
    assert parsed["level"] == "WARNING"
    assert parsed["service"] == "my-service"
    assert parsed["message"] == "something happened"


def test_json_formatter_includes_error_type_on_exception() -> None:
    """Log output should include error_type field when an exception is attached."""
    from persona_studio.core.logging import JSONFormatter

    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()

    parsed = json.loads(
        JSONFormatter().format(_record(level=logging.ERROR, msg="an error occurred", exc_info=exc_info))
    )

    assert parsed["error_type"] == "ValueError"
    assert "test error" in parsed["error_detail"]


def test_json_formatter_copies_known_extra_fields() -> None:
    """frame_index / batch_id passed via extra= end up in the JSON entry."""
    from persona_studio.core.logging import JSONFormatter

    record = _record(msg="Dropped story frame")
    record.frame_index = 3
    record.batch_id = "abc"
    parsed = json.loads(JSONFormatter().format(record))

    assert parsed["frame_index"] == 3
    assert parsed["batch_id"] == "abc"


def test_setup_logging_returns_logger() -> None:
    """setup_logging() should return a configured Logger instance."""
    from persona_studio.core.logging import setup_logging

    logger = setup_logging("test-app")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "test-app"


def test_setup_logging_does_not_duplicate_handlers() -> None:
    from persona_studio.core.logging import setup_logging

    first = setup_logging("test-dup")
    count = len(first.handlers)
    second = setup_logging("test-dup")
    assert second is first
    assert len(second.handlers) == count
