"""Logging configuration for tagcache.

Provides:
- JSON-formatted logs for log aggregation systems (ELK, Loki, etc.)
- A human-readable console format for the CLI
- Cache identifier and operation context on every record

Usage:
    from tagcache.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")

    logger = logging.getLogger(__name__)
    with LogContext(cache_identifier="Flow_Session"):
        logger.info("Flushing")  # Includes cache_identifier
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

cache_identifier_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "cache_identifier", default=""
)
operation_var: contextvars.ContextVar[str] = contextvars.ContextVar("operation", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "cache_identifier": cache_identifier_var,
    "operation": operation_var,
}

# LogRecord attributes that are not copied as extra fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter with cache context.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "ERROR",
        "logger": "tagcache.observability.reporter",
        "message": "Redis operation remove failed: ...",
        "module": "reporter",
        "function": "report",
        "line": 42,
        "cache_identifier": "Flow_Session",
        "operation": "remove"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name, var in _CONTEXT_VARS.items():
            value = var.get()
            if value:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for the CLI.

    Output format:
    2026-01-10 12:34:56 | ERROR    | tagcache.cache.backend | Flush failed | cache=Flow_Session
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()

        context_parts = []
        cache_identifier = cache_identifier_var.get()
        if cache_identifier:
            context_parts.append(f"cache={cache_identifier}")
        operation = operation_var.get()
        if operation:
            context_parts.append(f"op={operation}")

        context = f" | {' '.join(context_parts)}" if context_parts else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure process-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))

    root_logger.addHandler(handler)

    # redis-py logs reconnect attempts at DEBUG/INFO
    logging.getLogger("redis").setLevel(logging.WARNING)


class LogContext:
    """Context manager for adding temporary log context.

    Usage:
        with LogContext(cache_identifier="Flow_Session", operation="flush"):
            logger.info("Flushing")
    """

    def __init__(self, **kwargs: str) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> LogContext:
        for name, value in self.extra.items():
            var = _CONTEXT_VARS.get(name)
            if var is not None:
                self._tokens[name] = var.set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        self._tokens.clear()
