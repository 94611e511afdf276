"""Report rendering — rich text tables, JSON and SARIF 2.1.0."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ansiblesec import __version__
from ansiblesec.errors import ConfigError
from ansiblesec.scanner.models import FileFinding, ScanFindings, Severity

FORMATS = ("text", "json", "sarif")

_SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "cyan",
}

_SARIF_LEVELS = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}

_SECTIONS = (
    ("Secrets detected", "secrets", "SECRET"),
    ("Policy violations", "policy_violations", "POLICY"),
    ("Linting issues", "lint_issues", "LINT"),
)


def parse_format(value: str) -> str:
    fmt = value.lower()
    if fmt == "txt":
        fmt = "text"
    if fmt not in FORMATS:
        raise ConfigError(f"Unknown output format: {value}")
    return fmt


def write_report(findings: ScanFindings, fmt: str, output: str | Path | None = None) -> None:
    """Render ``findings`` in ``fmt`` to ``output`` (stdout when None)."""
    fmt = parse_format(fmt)
    if fmt == "text":
        if output is None:
            render_text(findings, Console())
        else:
            with open(output, "w", encoding="utf-8") as fh:
                render_text(findings, Console(file=fh, no_color=True, width=120))
        return

    payload = findings.to_dict() if fmt == "json" else build_sarif(findings)
    text = json.dumps(payload, indent=2)
    if output is None:
        print(text)
    else:
        Path(output).write_text(text + "\n", encoding="utf-8")


def render_text(findings: ScanFindings, console: Console) -> None:
    console.print("[bold cyan]ansiblesec scan report[/bold cyan]\n")

    for title, attr, prefix in _SECTIONS:
        file_findings: list[FileFinding] = getattr(findings, attr)
        if not file_findings:
            continue

        table = Table(title=title, show_lines=False)
        table.add_column("Severity", style="bold", width=10)
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Rule")
        table.add_column("Message", max_width=60)
        table.add_column("Context", max_width=40)

        for file_finding in file_findings:
            for finding in file_finding.with_prefix(prefix):
                color = _SEVERITY_COLORS[finding.severity]
                table.add_row(
                    f"[{color}]{finding.severity.value}[/{color}]",
                    str(file_finding.file_path),
                    str(finding.line),
                    finding.rule_id,
                    finding.message,
                    finding.context or "",
                )
        console.print(table)

    _print_summary(findings, console)


def _print_summary(findings: ScanFindings, console: Console) -> None:
    console.print(
        f"\nScanned {findings.files_scanned} files "
        f"({findings.files_skipped} skipped) "
        f"in {findings.duration:.2f}s"
    )
    total = findings.total_findings()
    if total == 0:
        console.print("[green]No findings.[/green]")
        return

    counts = ", ".join(
        f"[{_SEVERITY_COLORS[s]}]{findings.summary.count(s)} {s.value}[/{_SEVERITY_COLORS[s]}]"
        for s in Severity
    )
    console.print(f"Total findings: {total} ({counts})")

    if findings.has_critical():
        console.print("[bold red]Critical issues found, do not deploy.[/bold red]")
    elif findings.has_high():
        console.print("[yellow]High severity issues found, review required.[/yellow]")


def build_sarif(findings: ScanFindings) -> dict:
    results = []
    rule_ids: list[str] = []
    for _, attr, prefix in _SECTIONS:
        for file_finding in getattr(findings, attr):
            for finding in file_finding.with_prefix(prefix):
                if finding.rule_id not in rule_ids:
                    rule_ids.append(finding.rule_id)
                results.append(
                    {
                        "ruleId": finding.rule_id,
                        "ruleIndex": rule_ids.index(finding.rule_id),
                        "level": _SARIF_LEVELS[finding.severity],
                        "message": {"text": finding.message},
                        "locations": [
                            {
                                "physicalLocation": {
                                    "artifactLocation": {
                                        "uri": file_finding.file_path.as_posix()
                                    },
                                    "region": {
                                        "startLine": max(1, finding.line),
                                        "startColumn": finding.column + 1,
                                    },
                                }
                            }
                        ],
                    }
                )

    return {
        "version": "2.1.0",
        "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "ansiblesec",
                        "version": __version__,
                        "rules": [{"id": rule_id} for rule_id in rule_ids],
                    }
                },
                "results": results,
            }
        ],
    }
