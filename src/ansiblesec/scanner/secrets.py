"""Secret detector — pattern pass plus entropy pass over raw text."""

from __future__ import annotations

from ansiblesec.config import SecretsConfig
from ansiblesec.scanner.entropy import (
    MIN_CANDIDATE_LENGTH,
    extract_candidates,
    shannon_entropy,
)
from ansiblesec.scanner.models import Finding, Severity
from ansiblesec.scanner.patterns import PatternSet

REDACTION_MARKER = "***REDACTED***"
HIGH_ENTROPY_RULE_ID = "SECRET_HIGH_ENTROPY"
DEFAULT_ENTROPY_THRESHOLD = 4.5


def redact_secret(secret: str) -> str:
    """Redact a matched secret: short values entirely, longer ones after 4 chars."""
    if len(secret) <= 8:
        return REDACTION_MARKER
    return secret[:4] + REDACTION_MARKER


class SecretDetector:
    """Scans raw text for secrets. Stateless per call and safe to share across threads."""

    def __init__(
        self,
        patterns: PatternSet | None = None,
        entropy_threshold: float = DEFAULT_ENTROPY_THRESHOLD,
        min_entropy_length: int = MIN_CANDIDATE_LENGTH,
    ) -> None:
        self.patterns = patterns if patterns is not None else PatternSet.defaults()
        self.entropy_threshold = entropy_threshold
        # Candidates shorter than the extraction floor are never produced.
        self.min_entropy_length = max(min_entropy_length, MIN_CANDIDATE_LENGTH)

    @classmethod
    def from_config(cls, config: SecretsConfig) -> SecretDetector:
        return cls(
            patterns=PatternSet.load_or_default(config.rules_file),
            entropy_threshold=config.entropy_threshold,
            min_entropy_length=config.min_entropy_length,
        )

    def scan_content(self, text: str) -> list[Finding]:
        """Scan ``text`` line by line. Pattern findings precede entropy findings per line."""
        findings: list[Finding] = []

        for line_num, line in enumerate(text.splitlines(), start=1):
            for pattern in self.patterns:
                for match in pattern.regex.finditer(line):
                    findings.append(
                        Finding(
                            line=line_num,
                            column=match.start(),
                            severity=pattern.severity,
                            rule_id=pattern.id,
                            message=pattern.description,
                            context=redact_secret(match.group(0)),
                        )
                    )

            for offset, candidate in extract_candidates(line):
                if len(candidate) < self.min_entropy_length:
                    continue
                entropy = shannon_entropy(candidate)
                if entropy < self.entropy_threshold:
                    continue
                findings.append(
                    Finding(
                        line=line_num,
                        column=offset,
                        severity=Severity.MEDIUM,
                        rule_id=HIGH_ENTROPY_RULE_ID,
                        message=f"High entropy string detected (entropy: {entropy:.2f})",
                        context=redact_secret(candidate),
                    )
                )

        return findings
