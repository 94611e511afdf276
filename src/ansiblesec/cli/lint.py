"""CLI command: ansiblesec lint <path> — style and best-practice checks."""

from __future__ import annotations

import sys

import click

from ansiblesec.cli.report import FORMATS, write_report
from ansiblesec.config import Config
from ansiblesec.errors import AnsibleSecError
from ansiblesec.scanner.engine import ScanEngine


@click.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to a config file.")
@click.option("--output", "-o", type=click.Path(), help="Write the report to a file.")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(FORMATS, case_sensitive=False),
    default="text",
    show_default=True,
    help="Report format.",
)
@click.option("--ci-mode", is_flag=True, help="Exit 1 on critical/high findings.")
def lint(path: str, config_path: str | None, output: str | None, fmt: str, ci_mode: bool) -> None:
    """Lint playbooks for quality issues."""
    try:
        config = Config.load(config_path)
        engine = ScanEngine(config, use_cache=False)
        result = engine.lint(path)
    except AnsibleSecError as e:
        raise click.ClickException(str(e)) from e

    write_report(result, fmt, output)

    if ci_mode and result.has_errors():
        sys.exit(1)
