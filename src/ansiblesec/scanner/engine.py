"""Scan engine — discovers playbooks, analyzes them in a worker pool, aggregates."""

from __future__ import annotations

import fnmatch
import logging
import os
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ansiblesec.config import Config
from ansiblesec.errors import CacheError, ScanError
from ansiblesec.policy.evaluator import PolicyEvaluator
from ansiblesec.policy.loader import load_or_default
from ansiblesec.scanner.cache import Cache, ResultCache, hash_content
from ansiblesec.scanner.linter import Linter
from ansiblesec.scanner.models import FileFinding, ScanFindings
from ansiblesec.scanner.secrets import SecretDetector

logger = logging.getLogger(__name__)

_DOCUMENT_EXTENSIONS = {".yml", ".yaml"}
_DOCUMENT_NAME_MARKERS = ("playbook", "tasks", "handlers")
_DOCUMENT_NAMES = {"site.yml", "main.yml"}

SECRET_PREFIX = "SECRET"
POLICY_PREFIX = "POLICY"
LINT_PREFIX = "LINT"


def is_ansible_file(path: Path) -> bool:
    """Whether ``path`` looks like an Ansible document worth scanning."""
    if path.suffix.lower() in _DOCUMENT_EXTENSIONS:
        return True
    name = path.name
    return name in _DOCUMENT_NAMES or any(m in name for m in _DOCUMENT_NAME_MARKERS)


class ScanEngine:
    """Orchestrates secret detection and policy evaluation across files.

    Every collaborator can be injected; anything left out is built from
    ``config``. ``workers`` bounds the thread pool, 0 lets the executor pick.
    ``cache=None`` falls back to an on-disk ``ResultCache`` when caching is
    enabled in the config; pass ``use_cache=False`` to disable it outright.
    """

    def __init__(
        self,
        config: Config | None = None,
        workers: int | None = None,
        cache: Cache | None = None,
        use_cache: bool | None = None,
        detector: SecretDetector | None = None,
        evaluator: PolicyEvaluator | None = None,
        linter: Linter | None = None,
    ) -> None:
        self.config = config or Config()
        self.workers = self.config.general.parallel_jobs if workers is None else workers
        if self.workers < 0:
            raise ValueError("workers must be >= 0")

        self.detector = detector or SecretDetector.from_config(self.config.secrets)
        self.evaluator = evaluator or PolicyEvaluator(
            load_or_default(self.config.policies)
        )
        self.linter = linter or Linter(self.config.linting)

        if use_cache is None:
            use_cache = self.config.general.cache_enabled
        if not use_cache:
            self.cache: Cache | None = None
        elif cache is not None:
            self.cache = cache
        else:
            self.cache = ResultCache(self.config.general.resolved_cache_dir())

    def scan(self, root: str | Path) -> ScanFindings:
        """Scan ``root`` (file or directory) for secrets and policy violations."""
        return self._run(root, self._scan_file)

    def lint(self, root: str | Path) -> ScanFindings:
        """Lint ``root``; bypasses the cache and the security detectors."""
        return self._run(root, self._lint_file)

    def collect_files(self, root: str | Path) -> list[Path]:
        """Discover the documents under ``root`` in a stable order."""
        root = Path(root)
        if root.is_file():
            return [root] if is_ansible_file(root) else []
        if not root.is_dir():
            raise ScanError(f"Scan path does not exist: {root}")
        return sorted(self._walk(root))

    def _run(
        self, root: str | Path, analyze: Callable[[Path], FileFinding]
    ) -> ScanFindings:
        start = time.time()
        files = self.collect_files(root)
        logger.info("Analyzing %d file(s) under %s", len(files), root)

        def task(path: Path) -> FileFinding | None:
            try:
                return analyze(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping %s: %s", path, e)
            except Exception:
                logger.exception("Unexpected error analyzing %s", path)
            return None

        with ThreadPoolExecutor(max_workers=self.workers or None) as executor:
            results = list(executor.map(task, files))

        findings = aggregate(r for r in results if r is not None)
        findings.files_skipped = sum(1 for r in results if r is None)
        findings.duration = time.time() - start
        logger.info(
            "Analyzed %d file(s), %d finding(s)",
            findings.files_scanned,
            findings.total_findings(),
        )
        return findings

    def _scan_file(self, path: Path) -> FileFinding:
        if self.cache is not None:
            try:
                cached = self.cache.get(path)
            except CacheError as e:
                logger.debug("Cache unusable for %s: %s", path, e)
            else:
                logger.debug("Using cached results for %s", path)
                return cached

        data = path.read_bytes()
        content = data.decode("utf-8")
        findings = []
        if self.config.secrets.enabled:
            findings.extend(self.detector.scan_content(content))
        if self.config.policies.enabled:
            findings.extend(self.evaluator.evaluate_content(content))
        result = FileFinding(file_path=path, findings=tuple(findings))

        if self.cache is not None:
            try:
                self.cache.set(path, result, hash_content(data))
            except (OSError, ValueError) as e:
                logger.warning("Failed to cache results for %s: %s", path, e)
        return result

    def _lint_file(self, path: Path) -> FileFinding:
        content = path.read_text(encoding="utf-8")
        if not self.config.linting.enabled:
            return FileFinding(file_path=path)
        return FileFinding(file_path=path, findings=tuple(self.linter.lint(content)))

    def _walk(self, root: Path) -> Iterable[Path]:
        general = self.config.general
        visited: set[str] = set()

        for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
            real = os.path.realpath(dirpath)
            if real in visited:
                # Symlink cycle
                dirnames[:] = []
                continue
            visited.add(real)

            dirnames[:] = [
                d
                for d in dirnames
                if not self._is_excluded(root, os.path.join(dirpath, d))
            ]

            for name in filenames:
                path = Path(dirpath) / name
                if self._is_excluded(root, str(path)) or not is_ansible_file(path):
                    continue
                if any(fnmatch.fnmatch(name, p) for p in general.exclude_patterns):
                    continue
                try:
                    if path.stat().st_size > general.max_file_size:
                        continue
                except OSError:
                    continue
                yield path

    def _is_excluded(self, root: Path, path: str) -> bool:
        # Matched against the path below the scan root, as a plain substring.
        relative = os.path.relpath(path, root)
        return any(segment in relative for segment in self.config.general.exclude_paths)


def aggregate(results: Iterable[FileFinding]) -> ScanFindings:
    """Fold per-file results into counters and category buckets.

    Every operation is an increment or an append, so the outcome does not
    depend on the order results arrive in beyond bucket ordering.
    """
    scan = ScanFindings()
    for file_finding in results:
        scan.files_scanned += 1
        for finding in file_finding.findings:
            scan.summary.add(finding.severity)

        if file_finding.with_prefix(SECRET_PREFIX):
            scan.secrets.append(file_finding)
        if file_finding.with_prefix(POLICY_PREFIX):
            scan.policy_violations.append(file_finding)
        if file_finding.with_prefix(LINT_PREFIX):
            scan.lint_issues.append(file_finding)
    return scan
