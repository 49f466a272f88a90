"""CLI command for listing caches that use the Redis backend.

Usage:
    tagcache list
    tagcache list --config caches.json
"""

from __future__ import annotations

from pathlib import Path

from tagcache.cli.common import config_option, load_configurations
from tagcache.config import CacheConfiguration
from tagcache.exceptions import ConfigurationError


def redis_backend_rows(configurations: dict[str, CacheConfiguration]) -> list[list[str]]:
    """Table rows for every cache backed by Redis, directly or via a multi backend."""
    rows: list[list[str]] = []
    for cache_identifier, configuration in configurations.items():
        if configuration.is_redis_backend:
            found, multi = configuration, False
        elif configuration.is_multi_backend:
            try:
                found, multi = configuration.redis_backend_configuration(), True
            except ConfigurationError:
                continue
        else:
            continue
        if found is None:
            continue

        options = found.backend_options
        host = str(options.get("hostname", ""))
        sentinels = options.get("sentinels")
        if sentinels:
            host = sentinels if isinstance(sentinels, str) else ", ".join(sentinels)

        rows.append(
            [
                "yes" if multi else "no",
                cache_identifier,
                host,
                str(options.get("port", "")),
                "yes" if options.get("password") else "no",
            ]
        )
    return rows


def list_caches(config: Path | None = config_option) -> None:
    """List caches using the Redis backend.

    Shows caches configured with the Redis backend, including caches where
    it is one of the backends of a multi backend.
    """
    from rich.console import Console
    from rich.table import Table

    console = Console()
    configurations = load_configurations(config, console)

    table = Table(title="Redis caches")
    for column in ("Multi", "Cache Identifier", "Host / Sentinels", "Port", "Password"):
        table.add_column(column)
    for row in redis_backend_rows(configurations):
        table.add_row(*row)

    console.print(table)
