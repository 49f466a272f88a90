"""Redis client construction for tagcache.

Builds a synchronous redis-py client from BackendOptions. Three transports
are supported:
- TCP to hostname:port
- a unix socket, when hostname contains a "/"
- the current master of a sentinel-monitored service, when sentinels are set

Responses are kept as bytes because payloads are binary.
"""

from __future__ import annotations

from typing import Any

import redis
from redis.sentinel import Sentinel

from tagcache.config import BackendOptions


def _connection_kwargs(options: BackendOptions) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "db": options.database,
        "socket_connect_timeout": options.timeout,
        "socket_timeout": options.read_write_timeout,
        "decode_responses": False,  # Payloads are bytes
    }
    if options.password:
        kwargs["password"] = options.password
    return kwargs


def create_sentinel(options: BackendOptions) -> Sentinel:
    """Create a Sentinel manager for the configured sentinel addresses.

    The backend password is used for the sentinels as well.
    """
    sentinel_kwargs: dict[str, Any] = {
        "socket_connect_timeout": options.timeout,
        "socket_timeout": options.read_write_timeout,
    }
    if options.password:
        sentinel_kwargs["password"] = options.password
    return Sentinel(options.sentinel_addresses(), sentinel_kwargs=sentinel_kwargs)


def create_client(options: BackendOptions) -> redis.Redis:
    """Create a Redis client for the given options.

    No connection is opened until the first command.
    """
    kwargs = _connection_kwargs(options)

    if options.uses_sentinel:
        return create_sentinel(options).master_for(
            options.service, redis_class=redis.Redis, **kwargs
        )

    if "/" in options.hostname:
        return redis.Redis(unix_socket_path=options.hostname, **kwargs)

    return redis.Redis(host=options.hostname, port=options.port, **kwargs)
