"""Helpers shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer

from tagcache.config import CacheConfiguration, load_cache_configurations, settings
from tagcache.exceptions import ConfigurationError

if TYPE_CHECKING:
    from rich.console import Console

SUCCESS = "[green]✔[/green]"
FAILURE = "[red]X[/red]"

config_option = typer.Option(
    None,
    "--config",
    "-c",
    help="Cache configuration file (defaults to TAGCACHE_CACHES_FILE or caches.json)",
)


def load_configurations(path: Path | None, console: Console) -> dict[str, CacheConfiguration]:
    """Load the cache configurations or exit with an error."""
    try:
        return load_cache_configurations(path or settings.caches_file)
    except ConfigurationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from e


def fail(console: Console, message: str) -> typer.Exit:
    """Print a failed step and return the exit to raise."""
    console.print(FAILURE)
    console.print(f"[red]{message}[/red]")
    return typer.Exit(code=1)


def password_hint(console: Console, error: Exception, password: str, subject: str = "") -> None:
    """Explain NOAUTH errors depending on whether a password was configured."""
    if "NOAUTH" not in str(error) and "Authentication required" not in str(error):
        return
    if not password:
        console.print(
            f"Note: There was [u]no {subject}password[/u] defined in the backend options "
            "of this cache backend"
        )
    else:
        console.print(
            "The connection failed even though there was a password defined in the backend options"
        )
