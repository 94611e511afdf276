"""Policy evaluator — walks a parsed document against the enabled rules."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from typing import Any

import yaml

from ansiblesec.policy.document import (
    approximate_line,
    is_vaulted,
    iter_tasks,
    iter_var_mappings,
    module_name,
    parse_document,
    parse_octal_mode,
)
from ansiblesec.policy.models import (
    CheckPermissions,
    CustomYamlPath,
    DisallowHardcodedCredentials,
    DisallowModule,
    RequireNoLogForSensitive,
    RequireVault,
    Rule,
    RuleSet,
)
from ansiblesec.scanner.models import Finding

logger = logging.getLogger(__name__)

SENSITIVE_VAR_MARKERS = ("password", "secret", "token", "api_key", "private_key")
CREDENTIAL_KEYWORDS = ("password", "passwd", "secret", "api_key", "token", "credential")
SENSITIVE_MODULES = frozenset(
    {"user", "mysql_user", "postgresql_user", "uri", "get_url"}
)
PERMISSION_MODULES = ("file", "copy", "template")


class PolicyEvaluator:
    """Evaluates documents against a RuleSet. Read-only after construction."""

    def __init__(self, rules: RuleSet) -> None:
        self.rules = rules
        self._enabled = rules.enabled()

    def evaluate(self, document: Any, raw_text: str) -> list[Finding]:
        """Run every enabled rule; findings are concatenated rule by rule."""
        findings: list[Finding] = []
        for rule in self._enabled:
            check = _CHECKS[type(rule.rule_type)]
            findings.extend(check(rule, rule.rule_type, document, raw_text))
        return findings

    def evaluate_content(self, raw_text: str) -> list[Finding]:
        """Parse and evaluate ``raw_text``. Unparseable documents yield no findings."""
        try:
            document = parse_document(raw_text)
            return self.evaluate(document, raw_text)
        except (yaml.YAMLError, RecursionError) as e:
            logger.debug("Skipping policy checks, document cannot be walked: %s", e)
            return []


def is_sensitive_var(name: str) -> bool:
    lower = name.lower()
    return any(marker in lower for marker in SENSITIVE_VAR_MARKERS)


def _finding(rule: Rule, line: int, message: str, context: str) -> Finding:
    return Finding(
        line=line,
        column=0,
        severity=rule.severity,
        rule_id=rule.id,
        message=message,
        context=context,
    )


def _check_disallow_module(
    rule: Rule, variant: DisallowModule, document: Any, text: str
) -> list[Finding]:
    findings: list[Finding] = []
    seen: Counter[str] = Counter()
    disallowed = set(variant.modules)

    for task in iter_tasks(document):
        for key in task:
            name = module_name(key)
            if name is None or (name not in disallowed and key not in disallowed):
                continue
            line = approximate_line(text, f"{key}:", seen[key])
            seen[key] += 1
            findings.append(
                _finding(
                    rule,
                    line,
                    f"Use of disallowed module: {name}",
                    f"Module '{name}' is restricted for security reasons",
                )
            )
    return findings


def _check_require_vault(
    rule: Rule, variant: RequireVault, document: Any, text: str
) -> list[Finding]:
    findings: list[Finding] = []
    for variables in iter_var_mappings(document):
        for key, value in variables.items():
            if not isinstance(key, str) or key in variant.exceptions:
                continue
            if not is_sensitive_var(key):
                continue
            if not isinstance(value, str) or is_vaulted(value):
                continue
            findings.append(
                _finding(
                    rule,
                    approximate_line(text, key),
                    f"Sensitive variable '{key}' should be encrypted with Ansible Vault",
                    "Use ansible-vault to encrypt sensitive values",
                )
            )
    return findings


def _check_hardcoded_credentials(
    rule: Rule, variant: DisallowHardcodedCredentials, document: Any, text: str
) -> list[Finding]:
    findings: list[Finding] = []
    for line_num, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if stripped.startswith("#") or ":" not in line:
            continue
        if "{{" in line or "$ANSIBLE_VAULT" in line:
            continue

        lower = line.lower()
        keyword = next((k for k in CREDENTIAL_KEYWORDS if k in lower), None)
        if keyword is None:
            continue

        value = line.split(":", 1)[1].strip()
        if len(value) <= 3 or value.startswith("!vault"):
            continue
        findings.append(
            _finding(
                rule,
                line_num,
                f"Potential hardcoded credential detected for '{keyword}'",
                "Use Ansible Vault or variables for sensitive data",
            )
        )
    return findings


def _check_no_log(
    rule: Rule, variant: RequireNoLogForSensitive, document: Any, text: str
) -> list[Finding]:
    findings: list[Finding] = []
    seen: Counter[str] = Counter()

    for task in iter_tasks(document):
        sensitive_key = next(
            (k for k in task if module_name(k) in SENSITIVE_MODULES), None
        )
        if sensitive_key is None:
            continue
        occurrence = seen[sensitive_key]
        seen[sensitive_key] += 1
        if task.get("no_log") is True:
            continue
        findings.append(
            _finding(
                rule,
                approximate_line(text, f"{sensitive_key}:", occurrence),
                "Sensitive task should have 'no_log: true'",
                "Prevents sensitive data from being logged",
            )
        )
    return findings


def _check_permissions(
    rule: Rule, variant: CheckPermissions, document: Any, text: str
) -> list[Finding]:
    findings: list[Finding] = []
    max_mode = parse_octal_mode(variant.max_permissions)
    if max_mode is None:
        return findings

    modes_seen = 0
    for task in iter_tasks(document):
        for key, params in task.items():
            if module_name(key) not in PERMISSION_MODULES:
                continue
            if not isinstance(params, dict) or "mode" not in params:
                continue
            raw_mode = params["mode"]
            occurrence = modes_seen
            modes_seen += 1

            mode = parse_octal_mode(raw_mode)
            if mode is None or mode <= max_mode:
                continue
            display = raw_mode if isinstance(raw_mode, str) else f"0{mode:o}"
            findings.append(
                _finding(
                    rule,
                    approximate_line(text, "mode:", occurrence),
                    f"File permissions '{display}' are too permissive",
                    f"Consider using {variant.max_permissions} or more restrictive",
                )
            )
    return findings


def _check_yaml_path(
    rule: Rule, variant: CustomYamlPath, document: Any, text: str
) -> list[Finding]:
    parts = variant.path.split(".")
    current = document
    for part in parts:
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return []

    if variant.expected_value is None or isinstance(current, (dict, list)):
        return []

    actual = _scalar_text(current)
    if actual == variant.expected_value:
        return []
    return [
        _finding(
            rule,
            approximate_line(text, parts[-1]),
            f"Value at '{variant.path}' should be '{variant.expected_value}'",
            f"Found: '{actual}'",
        )
    ]


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


_CHECKS: dict[type, Callable[[Rule, Any, Any, str], list[Finding]]] = {
    DisallowModule: _check_disallow_module,
    RequireVault: _check_require_vault,
    DisallowHardcodedCredentials: _check_hardcoded_credentials,
    RequireNoLogForSensitive: _check_no_log,
    CheckPermissions: _check_permissions,
    CustomYamlPath: _check_yaml_path,
}
