"""Fixtures for cache unit tests: a mocked Redis client, no server required."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from tagcache.cache.backend import RedisBackend
from tagcache.cache.keys import KeyNamespace
from tagcache.observability.reporter import reset_logged_errors


class RecordingThrowableLogger:
    """ThrowableLogger that keeps messages in memory."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def log_error(self, message: str) -> None:
        self.messages.append(message)

    def render_throwable(self, error: BaseException) -> str:
        return f"{type(error).__name__}: {error}"


@pytest.fixture(autouse=True)
def _reset_logged_errors() -> Iterator[None]:
    reset_logged_errors()
    yield
    reset_logged_errors()


@pytest.fixture
def pipeline() -> MagicMock:
    """Mock pipeline usable as a context manager."""
    pipe = MagicMock()
    pipe.__enter__.return_value = pipe
    pipe.__exit__.return_value = False
    pipe.smembers.return_value = set()
    pipe.lrange.return_value = []
    pipe.execute.return_value = []
    return pipe


@pytest.fixture
def redis_client(pipeline: MagicMock) -> MagicMock:
    """Mock Redis client with two registered scripts."""
    client = MagicMock()
    client.exists.return_value = 0
    client.get.return_value = None
    client.smembers.return_value = set()
    client.pipeline.return_value = pipeline
    client.flush_script = MagicMock(return_value=None)
    client.flush_by_tag_script = MagicMock(return_value=0)
    client.register_script.side_effect = [client.flush_script, client.flush_by_tag_script]
    return client


@pytest.fixture
def throwable_logger() -> RecordingThrowableLogger:
    return RecordingThrowableLogger()


@pytest.fixture
def backend(redis_client: MagicMock, throwable_logger: RecordingThrowableLogger) -> RedisBackend:
    """Backend on the mocked client with namespace "test"."""
    return RedisBackend(
        "Test_Cache",
        client=redis_client,
        namespace=KeyNamespace("test"),
        throwable_logger=throwable_logger,
    )
