"""Deduplicated reporting of store failures.

Every store call of the backend runs inside FailureReporter.guard(). A
redis-py error is logged once per distinct error text for the lifetime of
the process, then re-raised as TransportError. Deduplication only limits
log volume: callers always see the failure.

The set of already reported fingerprints is module state, shared by all
backends in the process, so a Redis outage produces one log line per
distinct error instead of one per cache.
"""

from __future__ import annotations

import hashlib
import logging
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from tagcache.exceptions import TransportError
from tagcache.observability.logging import LogContext

logger = logging.getLogger(__name__)

_logged_errors: set[str] = set()


def error_fingerprint(error: BaseException) -> str:
    """Stable fingerprint of an error's text."""
    return hashlib.sha256(str(error).encode("utf-8", "replace")).hexdigest()


def reset_logged_errors() -> None:
    """Forget all reported fingerprints.

    Only meant for tests; in production the set lives as long as the process.
    """
    _logged_errors.clear()


@runtime_checkable
class ThrowableLogger(Protocol):
    """Logging capability the host application provides."""

    def log_error(self, message: str) -> None: ...

    def render_throwable(self, error: BaseException) -> str: ...


class LoggingThrowableLogger:
    """ThrowableLogger writing to a standard library logger."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def log_error(self, message: str) -> None:
        self._logger.error(message)

    def render_throwable(self, error: BaseException) -> str:
        return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()


class FailureReporter:
    """Logs store failures with optional process-wide deduplication.

    Without a throwable logger nothing is logged; failures are still raised.
    """

    def __init__(
        self,
        throwable_logger: ThrowableLogger | None = None,
        *,
        cache_identifier: str = "",
        deduplicate: bool = True,
        enabled: bool = True,
    ) -> None:
        self.throwable_logger = throwable_logger
        self.cache_identifier = cache_identifier
        self.deduplicate = deduplicate
        self.enabled = enabled

    def report(self, error: BaseException, operation: str) -> bool:
        """Log an error unless it was already reported.

        Returns True if a log line was emitted.
        """
        if not self.enabled or self.throwable_logger is None:
            return False

        fingerprint = error_fingerprint(error)
        if self.deduplicate and fingerprint in _logged_errors:
            return False

        with LogContext(cache_identifier=self.cache_identifier, operation=operation):
            self.throwable_logger.log_error(
                f'Redis backend of cache "{self.cache_identifier}" failed during {operation}: '
                f"{self.throwable_logger.render_throwable(error)}"
            )
        _logged_errors.add(fingerprint)
        return True

    @contextmanager
    def guard(self, operation: str) -> Iterator[None]:
        """Report redis-py errors raised in the block and re-raise them as TransportError."""
        try:
            yield
        except RedisError as e:
            self.report(e, operation)
            raise TransportError(
                f"Redis operation {operation} failed: {e}", operation=operation
            ) from e
