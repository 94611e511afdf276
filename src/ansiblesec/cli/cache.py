"""CLI commands: ansiblesec cache clear."""

from __future__ import annotations

import click
from rich.console import Console

from ansiblesec.config import Config
from ansiblesec.errors import AnsibleSecError
from ansiblesec.scanner.cache import ResultCache

console = Console(stderr=True)


@click.group()
def cache() -> None:
    """Manage the result cache."""


@cache.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to a config file.")
def clear(config_path: str | None) -> None:
    """Remove every cached result."""
    try:
        config = Config.load(config_path)
    except AnsibleSecError as e:
        raise click.ClickException(str(e)) from e

    cache_dir = config.general.resolved_cache_dir()
    ResultCache(cache_dir).clear()
    console.print(f"Cleared cache at [cyan]{cache_dir}[/cyan]")
