"""CLI command for checking a cache's Redis connection end to end.

Usage:
    tagcache connect Flow_Session
    tagcache connect Flow_Session --config caches.json

Runs each step in turn and stops with exit code 1 at the first failure:
lookup, client setup, sentinel and server connection, then set, get,
get by tag and remove of a test entry.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from redis.exceptions import RedisError

from tagcache.cache.backend import RedisBackend
from tagcache.cache.redis import create_sentinel
from tagcache.cli.common import (
    SUCCESS,
    config_option,
    fail,
    load_configurations,
    password_hint,
)
from tagcache.config import BackendOptions, settings
from tagcache.exceptions import CacheError, ConfigurationError

if TYPE_CHECKING:
    from redis.sentinel import Sentinel
    from rich.console import Console

ENTRY_IDENTIFIER = "tagcache-connectivity-test"
ENTRY_TAG = "tagcache-connectivity-test-tag"


class CheckFailed(Exception):
    """A diagnostic step returned an unexpected result."""


def sentinel_version(sentinel: Sentinel) -> str:
    """Server version reported by the first reachable sentinel."""
    last_error: RedisError | None = None
    for sentinel_client in sentinel.sentinels:
        try:
            info = sentinel_client.info("server")
        except RedisError as e:
            last_error = e
            continue
        return str(info.get("redis_version", "unknown"))
    if last_error is not None:
        raise last_error
    raise CheckFailed("No sentinels configured")


def _run_step(console: Console, label: str, step: Callable[[], None]) -> None:
    console.print(f"{label} ", end="")
    try:
        step()
    except (CacheError, RedisError, CheckFailed) as e:
        raise fail(console, str(e)) from e
    console.print(SUCCESS)


def check_entry_roundtrip(console: Console, backend: RedisBackend) -> None:
    """Set, read, read by tag and remove a test entry."""
    expected = str(time.time()).encode()

    def set_entry() -> None:
        backend.set(ENTRY_IDENTIFIER, expected, [ENTRY_TAG])

    def get_entry() -> None:
        actual = backend.get(ENTRY_IDENTIFIER)
        if actual != expected:
            raise CheckFailed(
                f'Returned content "{actual!r}" does not match expected content "{expected!r}"'
            )

    def get_by_tag() -> None:
        identifiers = backend.find_identifiers_by_tag(ENTRY_TAG)
        if len(identifiers) != 1:
            raise CheckFailed(f"Returned {len(identifiers)} results instead of 1")
        actual = backend.get(identifiers[0])
        if actual != expected:
            raise CheckFailed(
                f'Returned content "{actual!r}" does not match expected content "{expected!r}"'
            )

    def remove_entry() -> None:
        backend.remove(ENTRY_IDENTIFIER)
        if backend.get(ENTRY_IDENTIFIER) is not None:
            raise CheckFailed("Cache entry was not removed, it is still there")

    _run_step(console, "Setting cache entry", set_entry)
    _run_step(console, "Retrieving cache entry by identifier", get_entry)
    _run_step(console, "Retrieving cache entry by tag", get_by_tag)
    _run_step(console, "Removing cache entry", remove_entry)


def connect(
    cache_identifier: str = typer.Argument(..., help="Identifier of the cache to check"),
    config: Path | None = config_option,
) -> None:
    """Check the Redis connection of a cache.

    Connects the way the cache backend does and exercises set, get, get by
    tag and remove against the live server.
    """
    from rich.console import Console

    console = Console()
    configurations = load_configurations(config, console)

    console.print("Looking up cache ", end="")
    configuration = configurations.get(cache_identifier)
    if configuration is None:
        raise fail(console, "The specified cache does not exist.")
    console.print(SUCCESS)

    if configuration.is_multi_backend:
        console.print("Multi Backend detected, looking up actual cache ", end="")
        try:
            redis_configuration = configuration.redis_backend_configuration()
        except ConfigurationError as e:
            raise fail(
                console, f"Configuration of {cache_identifier} has an unexpected structure."
            ) from e
        if redis_configuration is None:
            raise fail(
                console, f"No Redis backend found in configuration of cache {cache_identifier}."
            )
        console.print(SUCCESS)
    elif configuration.is_redis_backend:
        redis_configuration = configuration
    else:
        raise fail(console, f"Cache {cache_identifier} does not use the Redis backend.")

    console.print("Initializing client ", end="")
    try:
        options = BackendOptions.from_mapping(redis_configuration.backend_options)
        backend = RedisBackend(
            cache_identifier,
            options,
            application_identifier=settings.application_identifier,
        )
    except ConfigurationError as e:
        raise fail(console, e.message) from e
    console.print(SUCCESS)

    if options.uses_sentinel:
        console.print("Opening Sentinel connection ", end="")
        try:
            version = sentinel_version(create_sentinel(options))
        except (RedisError, CheckFailed) as e:
            exit_ = fail(console, str(e))
            password_hint(console, e, options.password, subject="Sentinel ")
            raise exit_ from e
        console.print(SUCCESS)
        console.print(f"Sentinel server identified with version {version}")

    transport = "Redis Sentinel" if options.uses_sentinel else "a direct Redis connection"
    console.print(f"Opening connection using {transport} ", end="")
    try:
        backend.client.ping()
    except RedisError as e:
        exit_ = fail(console, str(e))
        password_hint(console, e, options.password)
        console.print(options.model_dump(exclude={"password"}))
        raise exit_ from e
    console.print(SUCCESS)

    try:
        check_entry_roundtrip(console, backend)
    finally:
        backend.close()

    console.print()
    console.print("[green]Everything seems to work[/green]")
