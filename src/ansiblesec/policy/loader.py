"""Load and validate policy RuleSets from YAML files."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from ansiblesec.config import PoliciesConfig
from ansiblesec.errors import RuleValidationError
from ansiblesec.policy.document import parse_octal_mode
from ansiblesec.policy.models import (
    RULE_TYPES,
    CheckPermissions,
    CustomYamlPath,
    DisallowHardcodedCredentials,
    DisallowModule,
    RequireNoLogForSensitive,
    RequireVault,
    Rule,
    RuleSet,
)
from ansiblesec.scanner.models import Severity

logger = logging.getLogger(__name__)


def load_rules(path: str | Path, strict: bool = False) -> RuleSet:
    """Load a rules file.

    In strict mode any invalid rule raises ``RuleValidationError``; otherwise
    invalid rules are dropped with a warning. A file that is not a mapping
    with a ``rules`` list always raises.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise RuleValidationError(f"Rules file {path} is not valid UTF-8: {e}") from e
    return load_rules_from_string(text, strict=strict)


def load_rules_from_string(text: str, strict: bool = False) -> RuleSet:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuleValidationError(f"Invalid YAML in rules file: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("rules"), list):
        raise RuleValidationError("Rules YAML must be a mapping with a 'rules' list")

    rules: list[Rule] = []
    seen: set[str] = set()
    for index, entry in enumerate(data["rules"]):
        try:
            rule = _parse_rule(entry, index)
            if rule.id in seen:
                raise RuleValidationError(f"Duplicate rule id: {rule.id}")
        except RuleValidationError as e:
            if strict:
                raise
            logger.warning("Dropping policy rule: %s", e)
            continue
        seen.add(rule.id)
        rules.append(rule)

    return RuleSet(rules=tuple(rules))


def load_or_default(config: PoliciesConfig | None = None) -> RuleSet:
    """Rules from the configured file, or the built-in set if it cannot be loaded."""
    config = config or PoliciesConfig()
    if config.rules_file is None:
        return default_rules(config)
    try:
        return load_rules(config.rules_file)
    except (OSError, RuleValidationError) as e:
        logger.warning(
            "Failed to load policy rules from %s: %s; falling back to defaults",
            config.rules_file,
            e,
        )
        return default_rules(config)


def default_rules(config: PoliciesConfig | None = None) -> RuleSet:
    """The built-in rule set, tuned by ``config``."""
    config = config or PoliciesConfig()
    rules = [
        Rule(
            id="POLICY_001",
            name="Disallow Risky Modules",
            description="Prevents use of risky modules like shell, command, and raw",
            severity=Severity.HIGH,
            rule_type=DisallowModule(modules=tuple(config.disallow_modules)),
        ),
        Rule(
            id="POLICY_002",
            name="Require Ansible Vault",
            description="Ensures sensitive variables are encrypted with Ansible Vault",
            severity=Severity.CRITICAL,
            rule_type=RequireVault(exceptions=("ansible_connection",)),
        ),
        Rule(
            id="POLICY_003",
            name="Disallow Hardcoded Credentials",
            description="Prevents hardcoded passwords and credentials in playbooks",
            severity=Severity.CRITICAL,
            rule_type=DisallowHardcodedCredentials(),
        ),
        Rule(
            id="POLICY_004",
            name="Require no_log for Sensitive Tasks",
            description="Ensures sensitive tasks have no_log: true",
            severity=Severity.HIGH,
            rule_type=RequireNoLogForSensitive(),
        ),
        Rule(
            id="POLICY_005",
            name="Check File Permissions",
            description="Validates file/directory permissions are not overly permissive",
            severity=Severity.MEDIUM,
            rule_type=CheckPermissions(max_permissions="0644"),
        ),
    ]
    if not config.require_vault:
        rules = [r for r in rules if not isinstance(r.rule_type, RequireVault)]
    return RuleSet(rules=tuple(rules))


def _parse_rule(entry: object, index: int) -> Rule:
    if not isinstance(entry, dict):
        raise RuleValidationError(f"Rule #{index} must be a mapping")

    rule_id = str(entry.get("id") or "").strip()
    if not rule_id:
        raise RuleValidationError(f"Rule #{index} has empty ID")
    name = str(entry.get("name") or "").strip()
    if not name:
        raise RuleValidationError(f"Rule {rule_id} has empty name")

    raw_severity = entry.get("severity", "")
    try:
        severity = Severity.parse(str(raw_severity))
    except ValueError:
        raise RuleValidationError(
            f"Rule {rule_id} has invalid severity: {raw_severity}"
        ) from None

    return Rule(
        id=rule_id,
        name=name,
        description=str(entry.get("description") or ""),
        severity=severity,
        enabled=bool(entry.get("enabled", True)),
        rule_type=_parse_rule_type(rule_id, entry.get("rule_type")),
    )


def _parse_rule_type(rule_id: str, data: object):
    if isinstance(data, str):
        data = {"type": data}
    if not isinstance(data, dict) or not data.get("type"):
        raise RuleValidationError(f"Rule {rule_id} is missing rule_type.type")

    type_name = _normalize_type_name(str(data["type"]))
    rule_cls = RULE_TYPES.get(type_name)
    if rule_cls is None:
        raise RuleValidationError(f"Rule {rule_id} has unknown rule type: {data['type']}")

    if rule_cls is DisallowModule:
        modules = _string_list(rule_id, data.get("modules"), "modules")
        if not modules:
            raise RuleValidationError(f"Rule {rule_id} must list at least one module")
        return DisallowModule(modules=modules)

    if rule_cls is RequireVault:
        return RequireVault(
            exceptions=_string_list(rule_id, data.get("exceptions", []), "exceptions")
        )

    if rule_cls is CheckPermissions:
        raw = data.get("max_permissions", "0644")
        if parse_octal_mode(raw) is None:
            raise RuleValidationError(
                f"Rule {rule_id} has invalid max_permissions: {raw!r}"
            )
        max_permissions = raw if isinstance(raw, str) else format(raw, "o")
        return CheckPermissions(max_permissions=max_permissions)

    if rule_cls is CustomYamlPath:
        path = data.get("path")
        if not isinstance(path, str) or not path.strip():
            raise RuleValidationError(f"Rule {rule_id} requires a non-empty path")
        expected = data.get("expected_value")
        if isinstance(expected, bool):
            expected = "true" if expected else "false"
        elif expected is not None:
            expected = str(expected)
        return CustomYamlPath(path=path.strip(), expected_value=expected)

    return rule_cls()


def _normalize_type_name(name: str) -> str:
    if "_" in name or name.islower():
        return "".join(part.capitalize() for part in name.split("_"))
    return name


def _string_list(rule_id: str, value: object, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise RuleValidationError(f"Rule {rule_id}: '{key}' must be a list of strings")
    return tuple(value)
