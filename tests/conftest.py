"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from ansiblesec.config import Config
from ansiblesec.errors import CacheMiss, HashMismatch
from ansiblesec.policy.models import DisallowModule, Rule, RuleSet
from ansiblesec.scanner.cache import hash_content
from ansiblesec.scanner.models import FileFinding, Severity
from ansiblesec.scanner.secrets import SecretDetector


class MemoryCache:
    """In-memory stand-in for ResultCache, keyed the same way."""

    def __init__(self) -> None:
        self.entries: dict[str, tuple[str, FileFinding]] = {}
        self.hits = 0

    def get(self, file_path: Path) -> FileFinding:
        entry = self.entries.get(str(file_path))
        if entry is None:
            raise CacheMiss(str(file_path))
        stored_hash, findings = entry
        if stored_hash != hash_content(Path(file_path).read_bytes()):
            raise HashMismatch(str(file_path))
        self.hits += 1
        return findings

    def set(
        self, file_path: Path, findings: FileFinding, content_hash: str | None = None
    ) -> None:
        if content_hash is None:
            content_hash = hash_content(Path(file_path).read_bytes())
        self.entries[str(file_path)] = (content_hash, findings)

    def clear(self) -> None:
        self.entries.clear()


class CountingDetector(SecretDetector):
    """SecretDetector that records how many documents it scanned."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    def scan_content(self, text: str):
        self.calls += 1
        return super().scan_content(text)


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def policy_rules_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "policy_rules.yaml"


@pytest.fixture
def playbook_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "playbook.yml"


@pytest.fixture
def config(tmp_path: Path) -> Config:
    config = Config()
    config.general.cache_dir = tmp_path / "cache"
    return config


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def counting_detector() -> CountingDetector:
    return CountingDetector()


@pytest.fixture
def shell_rules() -> RuleSet:
    return RuleSet(
        rules=(
            Rule(
                id="POLICY_001",
                name="Disallow Risky Modules",
                severity=Severity.HIGH,
                rule_type=DisallowModule(modules=("shell",)),
            ),
        )
    )
