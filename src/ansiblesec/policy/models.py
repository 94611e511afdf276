"""Policy data models — immutable rule definitions and their type variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ansiblesec.scanner.models import Severity


@dataclass(frozen=True)
class DisallowModule:
    """Flag tasks that invoke any of ``modules``."""

    modules: tuple[str, ...] = ()


@dataclass(frozen=True)
class RequireVault:
    """Sensitive variables must hold vault-encrypted values."""

    exceptions: tuple[str, ...] = ()


@dataclass(frozen=True)
class DisallowHardcodedCredentials:
    """Line heuristic for plaintext credentials."""


@dataclass(frozen=True)
class RequireNoLogForSensitive:
    """Tasks using sensitive modules must set ``no_log: true``."""


@dataclass(frozen=True)
class CheckPermissions:
    """``mode`` on file/copy/template tasks must not exceed ``max_permissions``."""

    max_permissions: str = "0644"


@dataclass(frozen=True)
class CustomYamlPath:
    """The value at a dotted ``path`` must equal ``expected_value`` when present."""

    path: str
    expected_value: str | None = None


RuleType = Union[
    DisallowModule,
    RequireVault,
    DisallowHardcodedCredentials,
    RequireNoLogForSensitive,
    CheckPermissions,
    CustomYamlPath,
]

RULE_TYPES: dict[str, type] = {
    "DisallowModule": DisallowModule,
    "RequireVault": RequireVault,
    "DisallowHardcodedCredentials": DisallowHardcodedCredentials,
    "RequireNoLogForSensitive": RequireNoLogForSensitive,
    "CheckPermissions": CheckPermissions,
    "CustomYamlPath": CustomYamlPath,
}


@dataclass(frozen=True)
class Rule:
    """A single policy rule."""

    id: str
    name: str
    severity: Severity
    rule_type: RuleType
    description: str = ""
    enabled: bool = True

    @property
    def type_name(self) -> str:
        return type(self.rule_type).__name__


@dataclass(frozen=True)
class RuleSet:
    """An ordered, immutable collection of rules."""

    rules: tuple[Rule, ...] = ()

    def enabled(self) -> tuple[Rule, ...]:
        return tuple(r for r in self.rules if r.enabled)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)
