"""Observability for tagcache: logging setup and failure reporting."""

from tagcache.observability.logging import LogContext, configure_logging
from tagcache.observability.reporter import (
    FailureReporter,
    LoggingThrowableLogger,
    ThrowableLogger,
    reset_logged_errors,
)

__all__ = [
    "FailureReporter",
    "LogContext",
    "LoggingThrowableLogger",
    "ThrowableLogger",
    "configure_logging",
    "reset_logged_errors",
]
