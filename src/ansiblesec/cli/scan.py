"""CLI command: ansiblesec scan <path> — secret detection and policy checks."""

from __future__ import annotations

import sys

import click
from rich.console import Console

from ansiblesec.cli.report import FORMATS, write_report
from ansiblesec.config import Config
from ansiblesec.errors import AnsibleSecError
from ansiblesec.scanner.engine import ScanEngine

console = Console(stderr=True)


@click.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to a config file.")
@click.option("--secrets-rules", type=click.Path(), help="Path to a secrets rules file.")
@click.option("--policy-rules", type=click.Path(), help="Path to a policy rules file.")
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
@click.option("--no-cache", is_flag=True, help="Disable the result cache.")
@click.option("--ci-mode", is_flag=True, help="Exit non-zero on critical/high findings.")
@click.option("--fail-on-findings", is_flag=True, help="Alias for --ci-mode.")
@click.option("--threads", "-t", type=click.IntRange(min=0), default=None, help="Worker threads (0 = auto).")
def scan(
    path: str,
    config_path: str | None,
    secrets_rules: str | None,
    policy_rules: str | None,
    output: str | None,
    fmt: str,
    no_cache: bool,
    ci_mode: bool,
    fail_on_findings: bool,
    threads: int | None,
) -> None:
    """Scan playbooks for secrets and policy violations."""
    try:
        config = Config.load(config_path)
    except AnsibleSecError as e:
        raise click.ClickException(str(e)) from e

    if secrets_rules:
        config.secrets.rules_file = secrets_rules
    if policy_rules:
        config.policies.rules_file = policy_rules

    console.print(f"[bold]ansiblesec[/bold] scanning [cyan]{path}[/cyan]")

    use_cache = config.general.cache_enabled and not no_cache
    try:
        engine = ScanEngine(config, workers=threads, use_cache=use_cache)
        result = engine.scan(path)
    except AnsibleSecError as e:
        raise click.ClickException(str(e)) from e

    write_report(result, fmt, output)
    if output:
        console.print(f"Report written to [cyan]{output}[/cyan]")

    if ci_mode or fail_on_findings:
        if result.has_critical():
            sys.exit(2)
        if result.has_high():
            sys.exit(1)
