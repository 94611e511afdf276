"""Scanner data models — findings, per-file results and scan summaries."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from pathlib import Path


class Severity(enum.Enum):
    """Finding severity level. Compares by urgency: CRITICAL > HIGH > ... > INFO."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: str | Severity, default: Severity | None = None) -> Severity:
        """Parse a case-insensitive severity name.

        Unknown names fall back to ``default`` when one is given, otherwise
        ``ValueError`` is raised.
        """
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            if default is not None:
                return default
            raise

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_RANKS = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


@dataclass(frozen=True)
class Finding:
    """A single reported issue.

    ``context`` carries a redacted excerpt or a remediation hint, never a
    raw secret value. ``column`` is the 0-based offset into the line; checks
    that work on the parsed tree cannot locate one and report 0.
    """

    line: int
    column: int
    severity: Severity
    rule_id: str
    message: str
    context: str | None = None

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "column": self.column,
            "severity": self.severity.value,
            "rule_id": self.rule_id,
            "message": self.message,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Finding:
        return cls(
            line=int(data["line"]),
            column=int(data["column"]),
            severity=Severity.parse(data["severity"]),
            rule_id=data["rule_id"],
            message=data["message"],
            context=data.get("context"),
        )


@dataclass(frozen=True)
class FileFinding:
    """All findings for one scanned file, in discovery order."""

    file_path: Path
    findings: tuple[Finding, ...] = ()

    def to_dict(self) -> dict:
        return {
            "file_path": str(self.file_path),
            "findings": [f.to_dict() for f in self.findings],
        }

    @classmethod
    def from_dict(cls, data: dict) -> FileFinding:
        return cls(
            file_path=Path(data["file_path"]),
            findings=tuple(Finding.from_dict(f) for f in data.get("findings", [])),
        )

    def with_prefix(self, prefix: str) -> list[Finding]:
        """Findings whose rule id starts with ``prefix``."""
        return [f for f in self.findings if f.rule_id.startswith(prefix)]


@dataclass
class Summary:
    """Severity counters; only ever incremented."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0

    def add(self, severity: Severity) -> None:
        attr = severity.value.lower()
        setattr(self, attr, getattr(self, attr) + 1)

    def count(self, severity: Severity) -> int:
        return getattr(self, severity.value.lower())

    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low + self.info

    def to_dict(self) -> dict:
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "info": self.info,
        }


@dataclass
class ScanFindings:
    """Aggregate result of a scan or lint run."""

    files_scanned: int = 0
    files_skipped: int = 0
    secrets: list[FileFinding] = field(default_factory=list)
    policy_violations: list[FileFinding] = field(default_factory=list)
    lint_issues: list[FileFinding] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    duration: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def has_critical(self) -> bool:
        return self.summary.critical > 0

    def has_high(self) -> bool:
        return self.summary.high > 0

    def has_errors(self) -> bool:
        return self.has_critical() or self.has_high()

    def total_findings(self) -> int:
        return self.summary.total()

    def to_dict(self) -> dict:
        return {
            "files_scanned": self.files_scanned,
            "files_skipped": self.files_skipped,
            "secrets": [f.to_dict() for f in self.secrets],
            "policy_violations": [f.to_dict() for f in self.policy_violations],
            "lint_issues": [f.to_dict() for f in self.lint_issues],
            "summary": self.summary.to_dict(),
            "total_findings": self.total_findings(),
            "duration": round(self.duration, 3),
            "timestamp": self.timestamp,
        }
