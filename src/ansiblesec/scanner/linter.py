"""Style and best-practice checks for playbooks."""

from __future__ import annotations

from typing import Any

import yaml

from ansiblesec.config import LintingConfig
from ansiblesec.policy.document import (
    approximate_line,
    iter_tasks,
    module_name,
    parse_document,
)
from ansiblesec.scanner.models import Finding, Severity

PACKAGE_MODULES = frozenset({"apt", "yum", "dnf", "package", "pip"})
COMMAND_MODULES = frozenset({"command", "shell"})
MIN_TASK_NAME_LENGTH = 5


class Linter:
    """Produces ``LINT_*`` findings for a document's text."""

    def __init__(self, config: LintingConfig | None = None) -> None:
        self.config = config or LintingConfig()

    def lint(self, text: str) -> list[Finding]:
        findings: list[Finding] = []

        try:
            document = parse_document(text)
            if document is not None:
                findings.extend(self._check_plays(document, text))
                findings.extend(self._check_tasks(document, text))
        except (yaml.YAMLError, RecursionError):
            findings = []

        findings.extend(self._check_lines(text))
        return findings

    def _check_plays(self, document: Any, text: str) -> list[Finding]:
        findings: list[Finding] = []
        if not isinstance(document, list):
            return findings

        plays = [p for p in document if isinstance(p, dict) and _looks_like_play(p)]
        for idx, play in enumerate(plays):
            if "hosts" not in play:
                findings.append(
                    Finding(
                        line=approximate_line(text, "name", idx),
                        column=0,
                        severity=Severity.MEDIUM,
                        rule_id="LINT_001",
                        message="Play should define 'hosts'",
                        context="Every play should specify which hosts to run on",
                    )
                )
            if self.config.require_name and "name" not in play:
                findings.append(
                    Finding(
                        line=approximate_line(text, "hosts", idx),
                        column=0,
                        severity=Severity.LOW,
                        rule_id="LINT_002",
                        message="Play should have a descriptive 'name'",
                        context="Named plays improve readability and debugging",
                    )
                )
        return findings

    def _check_tasks(self, document: Any, text: str) -> list[Finding]:
        findings: list[Finding] = []

        for idx, task in enumerate(iter_tasks(document)):
            modules = {module_name(k) for k in task}
            line = approximate_line(text, "name", idx)

            if modules & PACKAGE_MODULES and task.get("become") is not True:
                findings.append(
                    Finding(
                        line=line,
                        column=0,
                        severity=Severity.MEDIUM,
                        rule_id="LINT_003",
                        message="Package management tasks should use 'become: true'",
                        context="Package installation typically requires elevated privileges",
                    )
                )

            if modules & COMMAND_MODULES and "changed_when" not in task:
                findings.append(
                    Finding(
                        line=line,
                        column=0,
                        severity=Severity.LOW,
                        rule_id="LINT_004",
                        message="Command tasks should define 'changed_when'",
                        context="Improves idempotency tracking",
                    )
                )

            name = task.get("name")
            if not isinstance(name, str):
                continue
            if len(name) < MIN_TASK_NAME_LENGTH:
                findings.append(
                    Finding(
                        line=line,
                        column=0,
                        severity=Severity.LOW,
                        rule_id="LINT_005",
                        message="Task name is too short",
                        context="Use descriptive task names (at least 5 characters)",
                    )
                )
            if not name[:1].isupper():
                findings.append(
                    Finding(
                        line=line,
                        column=0,
                        severity=Severity.INFO,
                        rule_id="LINT_006",
                        message="Task name should start with uppercase letter",
                        context="Follow consistent naming conventions",
                    )
                )
        return findings

    def _check_lines(self, text: str) -> list[Finding]:
        findings: list[Finding] = []
        max_length = self.config.max_line_length

        for line_num, line in enumerate(text.splitlines(), start=1):
            if len(line) > max_length:
                findings.append(
                    Finding(
                        line=line_num,
                        column=max_length,
                        severity=Severity.INFO,
                        rule_id="LINT_007",
                        message=f"Line too long ({len(line)} > {max_length})",
                        context="Consider breaking long lines for readability",
                    )
                )
            if line.endswith((" ", "\t")):
                findings.append(
                    Finding(
                        line=line_num,
                        column=len(line.rstrip()),
                        severity=Severity.INFO,
                        rule_id="LINT_008",
                        message="Trailing whitespace",
                        context="Remove trailing whitespace",
                    )
                )
            if "\t" in line:
                findings.append(
                    Finding(
                        line=line_num,
                        column=line.index("\t"),
                        severity=Severity.HIGH,
                        rule_id="LINT_009",
                        message="YAML does not allow tabs for indentation",
                        context="Use spaces instead of tabs",
                    )
                )
        return findings


def _looks_like_play(item: dict) -> bool:
    return "hosts" in item or any(
        key in item for key in ("tasks", "roles", "pre_tasks", "post_tasks", "handlers")
    )
