"""CLI commands for tagcache.

Provides command-line diagnostics using Typer:
- tagcache list: List caches configured with the Redis backend
- tagcache connect: Check a cache's connection end to end
- tagcache test: Read a cache entry repeatedly for a while

Usage:
    tagcache --help
    tagcache list --config caches.json
    tagcache connect Flow_Session
    tagcache test Flow_Session --time 60
"""

import typer

from tagcache.cli.connect_cmd import connect
from tagcache.cli.list_cmd import list_caches
from tagcache.cli.watch_cmd import watch
from tagcache.config import settings
from tagcache.observability.logging import configure_logging

app = typer.Typer(
    name="tagcache",
    help="tagcache: diagnostics for the tagged Redis cache backend",
    no_args_is_help=True,
)

app.command("list")(list_caches)
app.command("connect")(connect)
app.command("test")(watch)


@app.callback()
def callback() -> None:
    """tagcache: diagnostics for the tagged Redis cache backend."""
    configure_logging(json_format=settings.log_json, level=settings.log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
