"""Docker helpers for running a throwaway Redis server."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import redis

if TYPE_CHECKING:
    from docker.client import DockerClient
    from docker.models.containers import Container
else:
    DockerClient = Any  # type: ignore[misc,assignment]
    Container = Any  # type: ignore[misc,assignment]

REDIS_IMAGE = "redis:7-alpine"
REDIS_PORT = 6379


def get_docker_client() -> DockerClient:
    """Docker client configured from DOCKER_HOST and friends."""
    import docker

    return docker.from_env()


def published_host(client: DockerClient) -> str:
    """Host name under which published container ports are reachable."""
    base_url = client.api.base_url
    if base_url.startswith(("unix://", "npipe://", "http+docker://")):
        return "localhost"
    return urlparse(base_url).hostname or "localhost"


@dataclass
class RedisContainer:
    """A running Redis container."""

    container: Container
    host: str

    @property
    def port(self) -> int:
        self.container.reload()
        bindings = self.container.attrs["NetworkSettings"]["Ports"].get(f"{REDIS_PORT}/tcp")
        if not bindings:
            raise RuntimeError(f"Redis port not published by container {self.container.short_id}")
        return int(bindings[0]["HostPort"])

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.port}/0"

    def remove(self) -> None:
        self.container.remove(force=True, v=True)


@contextmanager
def run_redis(client: DockerClient, image: str = REDIS_IMAGE) -> Iterator[RedisContainer]:
    """Start a Redis container on a random host port and remove it afterwards."""
    container = client.containers.run(
        image,
        detach=True,
        ports={f"{REDIS_PORT}/tcp": None},
    )
    service = RedisContainer(container=container, host=published_host(client))
    try:
        yield service
    finally:
        service.remove()


def wait_for_redis(client: redis.Redis, timeout: float = 30.0) -> None:
    """Block until the server answers PING."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            client.ping()
            return
        except redis.RedisError:
            if time.monotonic() >= deadline:
                raise
            time.sleep(0.5)
