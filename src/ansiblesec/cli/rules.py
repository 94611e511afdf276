"""CLI commands: ansiblesec rules validate|list."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from ansiblesec.errors import RuleValidationError
from ansiblesec.policy.loader import default_rules, load_rules

console = Console()


@click.group()
def rules() -> None:
    """Validate and inspect policy rules."""


@rules.command()
@click.argument("rules_file", type=click.Path(exists=True))
def validate(rules_file: str) -> None:
    """Validate a rules file's syntax and structure."""
    try:
        rule_set = load_rules(rules_file, strict=True)
    except (OSError, RuleValidationError) as e:
        raise click.ClickException(f"Invalid rules file: {e}") from e
    console.print(f"[green]Rules file is valid[/green] ({len(rule_set)} rules)")


@rules.command(name="list")
@click.argument("rules_file", type=click.Path(exists=True), required=False)
def list_rules(rules_file: str | None) -> None:
    """List the rules in a file, or the built-in rules."""
    try:
        rule_set = load_rules(rules_file) if rules_file else default_rules()
    except (OSError, RuleValidationError) as e:
        raise click.ClickException(str(e)) from e

    table = Table(title="Policy rules")
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Description", max_width=50)
    for rule in rule_set:
        table.add_row(
            "[green]✓[/green]" if rule.enabled else "[red]✗[/red]",
            rule.id,
            rule.name,
            rule.type_name,
            rule.severity.value,
            rule.description,
        )
    console.print(table)
