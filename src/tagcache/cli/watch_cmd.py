"""CLI command for watching a cache entry over time.

Usage:
    tagcache test Flow_Session
    tagcache test Flow_Session --time 60

Writes a timestamp entry, then reads it back every 100 ms and prints "*"
when it matches and "X" when it does not. Useful while failing over a
sentinel-managed master.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from tagcache.cache.backend import RedisBackend
from tagcache.cli.common import config_option, load_configurations
from tagcache.config import BackendOptions, settings
from tagcache.exceptions import CacheError

if TYPE_CHECKING:
    from rich.console import Console

ENTRY_IDENTIFIER = "redis_test"
TAGGED_ENTRY_IDENTIFIER = "redis_tagged_test"
ENTRY_TAG = "the_tag"


def _write_and_poll(console: Console, backend: RedisBackend, duration: int) -> None:
    timestamp = int(time.time())
    expected = str(timestamp).encode()

    console.print(f'Setting cache entry "{ENTRY_IDENTIFIER}" to value "{timestamp}"')
    backend.set(ENTRY_IDENTIFIER, expected)
    backend.set(TAGGED_ENTRY_IDENTIFIER, b"this is a tagged entry", [ENTRY_TAG])
    console.print(backend.find_identifiers_by_tag(ENTRY_TAG))

    console.print(f"Retrieving the cache entry for {duration} seconds:")
    end = timestamp + duration
    while time.time() < end:
        try:
            matches = backend.get(ENTRY_IDENTIFIER) == expected
        except CacheError:
            matches = False
        console.print("[green]*[/green]" if matches else "[red]X[/red]", end="")
        time.sleep(0.1)
    console.print()


def watch(
    cache_identifier: str = typer.Argument(..., help="Identifier of the cache to test"),
    duration: int = typer.Option(600, "--time", "-t", help="Seconds to keep reading"),
    config: Path | None = config_option,
) -> None:
    """Test the Redis connection of a cache over time."""
    from rich.console import Console

    console = Console()
    configurations = load_configurations(config, console)

    configuration = configurations.get(cache_identifier)
    if configuration is None:
        console.print("[red]The specified cache does not exist.[/red]")
        raise typer.Exit(code=1)

    try:
        redis_configuration = configuration.redis_backend_configuration()
        if redis_configuration is None:
            console.print(f"[red]Cache {cache_identifier} does not use the Redis backend.[/red]")
            raise typer.Exit(code=1)

        backend = RedisBackend(
            cache_identifier,
            BackendOptions.from_mapping(redis_configuration.backend_options),
            application_identifier=settings.application_identifier,
        )
        try:
            _write_and_poll(console, backend, duration)
        finally:
            backend.close()
    except CacheError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from e
