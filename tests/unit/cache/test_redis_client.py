"""Tests for Redis client construction."""

from __future__ import annotations

from redis.sentinel import SentinelConnectionPool

from tagcache.cache.redis import create_client, create_sentinel
from tagcache.config import BackendOptions


class TestCreateClient:
    """Tests for create_client()."""

    def test_tcp_client(self) -> None:
        options = BackendOptions.from_mapping(
            {"hostname": "redis.local", "port": 6380, "database": 3, "password": "s3cret"}
        )

        client = create_client(options)

        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["host"] == "redis.local"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 3
        assert kwargs["password"] == "s3cret"
        assert kwargs["socket_connect_timeout"] == 5.0
        assert kwargs["socket_timeout"] == 1.0

    def test_unix_socket_client(self) -> None:
        client = create_client(BackendOptions.from_mapping({"hostname": "/var/run/redis.sock"}))

        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["path"] == "/var/run/redis.sock"
        assert kwargs.get("password") is None

    def test_sentinel_client(self) -> None:
        options = BackendOptions.from_mapping(
            {"sentinels": ["s1:26379", "s2:26380"], "service": "cache"}
        )

        client = create_client(options)

        assert isinstance(client.connection_pool, SentinelConnectionPool)
        assert client.connection_pool.service_name == "cache"


class TestCreateSentinel:
    """Tests for create_sentinel()."""

    def test_addresses_and_password(self) -> None:
        options = BackendOptions.from_mapping(
            {"sentinels": "tcp://s1:26379,tcp://s2:26380", "password": "s3cret"}
        )

        sentinel = create_sentinel(options)

        assert len(sentinel.sentinels) == 2
        first = sentinel.sentinels[0].connection_pool.connection_kwargs
        assert (first["host"], first["port"]) == ("s1", 26379)
        assert first["password"] == "s3cret"
