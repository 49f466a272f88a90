"""Tests for logging configuration."""

import json
import logging

from tagcache.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    cache_identifier_var,
    operation_var,
)


def _record(message: str = "Flushed") -> logging.LogRecord:
    return logging.LogRecord(
        name="tagcache.cache.backend",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "tagcache.cache.backend"
        assert data["message"] == "Flushed"
        assert "cache_identifier" not in data

    def test_includes_context(self) -> None:
        with LogContext(cache_identifier="Flow_Session", operation="flush"):
            data = json.loads(JsonFormatter().format(_record()))

        assert data["cache_identifier"] == "Flow_Session"
        assert data["operation"] == "flush"

    def test_extra_fields(self) -> None:
        record = _record()
        record.entry_count = 3

        data = json.loads(JsonFormatter().format(record))

        assert data["entry_count"] == 3


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_format_with_context(self) -> None:
        formatter = ConsoleFormatter(use_colors=False)

        with LogContext(cache_identifier="Flow_Session"):
            line = formatter.format(_record())

        assert "| INFO     | tagcache.cache.backend | Flushed | cache=Flow_Session" in line


class TestLogContext:
    """Tests for LogContext."""

    def test_resets_on_exit(self) -> None:
        with LogContext(cache_identifier="A", operation="get"):
            assert cache_identifier_var.get() == "A"
            assert operation_var.get() == "get"

        assert cache_identifier_var.get() == ""
        assert operation_var.get() == ""

    def test_ignores_unknown_keys(self) -> None:
        with LogContext(unknown="value"):
            assert cache_identifier_var.get() == ""
