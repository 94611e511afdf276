"""Secret detection patterns — built-in defaults and YAML-loaded pattern sets."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from ansiblesec.errors import PatternError
from ansiblesec.scanner.models import Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretPattern:
    """Declarative pattern definition, as written in a rules file."""

    id: str
    name: str
    pattern: str
    severity: Severity = Severity.MEDIUM
    description: str = ""
    enabled: bool = True


@dataclass(frozen=True)
class CompiledPattern:
    """A detection pattern with compiled regex and metadata."""

    id: str
    name: str
    regex: re.Pattern[str]
    severity: Severity
    description: str


DEFAULT_PATTERNS: tuple[SecretPattern, ...] = (
    SecretPattern(
        id="SECRET_AWS_ACCESS_KEY",
        name="AWS Access Key",
        pattern=r"AKIA[0-9A-Z]{16}",
        severity=Severity.CRITICAL,
        description="AWS Access Key detected",
    ),
    SecretPattern(
        id="SECRET_GITHUB_TOKEN",
        name="GitHub Token",
        pattern=r"ghp_[0-9a-zA-Z]{36}",
        severity=Severity.CRITICAL,
        description="GitHub Token detected",
    ),
    SecretPattern(
        id="SECRET_PRIVATE_KEY",
        name="Private Key",
        pattern=r"-----BEGIN (RSA |DSA |EC |OPENSSH )?PRIVATE KEY-----",
        severity=Severity.CRITICAL,
        description="Private Key detected",
    ),
    SecretPattern(
        id="SECRET_SLACK_TOKEN",
        name="Slack Token",
        pattern=r"xox[baprs]-[0-9A-Za-z-]{10,48}",
        severity=Severity.HIGH,
        description="Slack Token detected",
    ),
    SecretPattern(
        id="SECRET_GOOGLE_API_KEY",
        name="Google API Key",
        pattern=r"AIza[0-9A-Za-z_\-]{35}",
        severity=Severity.HIGH,
        description="Google API Key detected",
    ),
)


class PatternSet:
    """Compiled, enabled-only set of secret patterns. Read-only after construction."""

    def __init__(self, patterns: list[SecretPattern] | tuple[SecretPattern, ...]) -> None:
        self._compiled: list[CompiledPattern] = []
        for pattern in patterns:
            if not pattern.enabled:
                continue
            try:
                self._compiled.append(compile_pattern(pattern))
            except PatternError as e:
                logger.warning("Dropping secret pattern %s: %s", pattern.id, e)

    def __iter__(self):
        return iter(self._compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    @property
    def ids(self) -> list[str]:
        return [p.id for p in self._compiled]

    @classmethod
    def defaults(cls) -> PatternSet:
        return cls(DEFAULT_PATTERNS)

    @classmethod
    def from_file(cls, path: str | Path) -> PatternSet:
        """Load patterns from a YAML rules file. Raises on unreadable or malformed files."""
        return cls(load_patterns(path))

    @classmethod
    def load_or_default(cls, path: str | Path | None) -> PatternSet:
        """Load patterns from ``path``, falling back to the built-in set on failure."""
        if path is None:
            return cls.defaults()
        try:
            return cls.from_file(path)
        except (OSError, PatternError) as e:
            logger.warning(
                "Failed to load secret patterns from %s: %s; falling back to defaults",
                path,
                e,
            )
            return cls.defaults()


def compile_pattern(pattern: SecretPattern) -> CompiledPattern:
    try:
        regex = re.compile(pattern.pattern)
    except re.error as e:
        raise PatternError(f"invalid regex {pattern.pattern!r}: {e}") from e
    return CompiledPattern(
        id=pattern.id,
        name=pattern.name,
        regex=regex,
        severity=pattern.severity,
        description=pattern.description or f"{pattern.name} detected",
    )


def load_patterns(path: str | Path) -> list[SecretPattern]:
    """Parse a secrets rules file into pattern definitions."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise PatternError(f"Pattern file {path} is not valid UTF-8: {e}") from e
    return load_patterns_from_string(text)


def load_patterns_from_string(text: str) -> list[SecretPattern]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PatternError(f"invalid YAML: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("rules"), list):
        raise PatternError("Secrets rules YAML must be a mapping with a 'rules' list")

    patterns: list[SecretPattern] = []
    for entry in data["rules"]:
        if not isinstance(entry, dict) or not entry.get("id") or not entry.get("pattern"):
            logger.warning("Skipping malformed secret pattern entry: %r", entry)
            continue
        name = str(entry.get("name") or entry["id"])
        patterns.append(
            SecretPattern(
                id=str(entry["id"]),
                name=name,
                pattern=str(entry["pattern"]),
                severity=Severity.parse(entry.get("severity", "MEDIUM"), Severity.MEDIUM),
                description=str(entry.get("description", "")),
                enabled=bool(entry.get("enabled", True)),
            )
        )
    return patterns
