"""Integration test fixtures backed by a real Redis server.

TAGCACHE_TEST_REDIS_URL points the tests at an existing server. Without it
a redis:7-alpine container is started through Docker, and the tests are
skipped when Docker is not available either. The selected database is
flushed after every test.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
import redis

from tagcache.cache.backend import RedisBackend
from tagcache.cache.keys import KeyNamespace
from tagcache.observability.reporter import reset_logged_errors
from tests.integration.docker_utils import get_docker_client, run_redis, wait_for_redis


@pytest.fixture(scope="session")
def redis_url() -> Iterator[str]:
    """URL of the Redis server used by the integration tests."""
    url = os.environ.get("TAGCACHE_TEST_REDIS_URL")
    if url:
        yield url
        return

    try:
        docker_client = get_docker_client()
        docker_client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")

    with run_redis(docker_client) as container:
        yield container.url
    docker_client.close()


@pytest.fixture
def redis_client(redis_url: str) -> Iterator[redis.Redis]:
    client = redis.Redis.from_url(redis_url)
    wait_for_redis(client)
    yield client
    client.flushdb()
    client.close()


@pytest.fixture
def make_backend(redis_client: redis.Redis):
    """Factory for backends sharing the test client and namespace."""
    reset_logged_errors()

    def factory(compression_level: int = 0, prefix: str = "itest") -> RedisBackend:
        return RedisBackend(
            "Integration_Cache",
            {"compressionLevel": compression_level},
            client=redis_client,
            namespace=KeyNamespace(prefix),
            throwable_logger=None,
        )

    return factory


@pytest.fixture
def backend(make_backend) -> RedisBackend:
    return make_backend()
