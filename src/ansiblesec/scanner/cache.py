"""Content-addressed result cache.

Each cached source file gets one JSON entry under the cache root, named by a
SHA-256 of the file's path. The entry records a SHA-256 of the file's content
at the time it was written; an entry is only served while that content hash
still matches. Entries never expire by age.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Protocol

from ansiblesec.errors import CacheError, CacheMiss, HashMismatch
from ansiblesec.scanner.models import FileFinding

logger = logging.getLogger(__name__)


class Cache(Protocol):
    """What the scan engine needs from a result cache."""

    def get(self, file_path: Path) -> FileFinding: ...

    def set(
        self, file_path: Path, findings: FileFinding, content_hash: str | None = None
    ) -> None: ...

    def clear(self) -> None: ...


def hash_content(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ResultCache:
    """On-disk cache of per-file findings.

    No locking: concurrent processes sharing one cache root race, and the
    last writer wins.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def get(self, file_path: Path) -> FileFinding:
        """Return the cached findings for ``file_path``.

        Raises ``CacheMiss`` when no entry exists and ``HashMismatch`` when the
        file content changed since the entry was written.
        """
        entry_path = self.entry_path(file_path)
        if not entry_path.is_file():
            raise CacheMiss(f"no cache entry for {file_path}")

        try:
            entry = json.loads(entry_path.read_text(encoding="utf-8"))
            stored_hash = entry["file_hash"]
            findings = FileFinding.from_dict(entry["findings"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheError(f"corrupt cache entry {entry_path.name}: {e}") from e

        try:
            current_hash = hash_content(Path(file_path).read_bytes())
        except OSError as e:
            raise CacheError(f"cannot hash {file_path}: {e}") from e

        if stored_hash != current_hash:
            raise HashMismatch(f"{file_path} changed since it was cached")

        return findings

    def set(
        self, file_path: Path, findings: FileFinding, content_hash: str | None = None
    ) -> None:
        """Write (or overwrite) the entry for ``file_path``.

        ``content_hash`` should be the hash of the exact bytes the findings were
        computed from; the file is only re-read when it is omitted.
        """
        if content_hash is None:
            content_hash = hash_content(Path(file_path).read_bytes())
        entry = {
            "file_hash": content_hash,
            "findings": findings.to_dict(),
            "timestamp": int(time.time()),
        }
        entry_path = self.entry_path(file_path)
        entry_path.parent.mkdir(parents=True, exist_ok=True)
        entry_path.write_text(json.dumps(entry), encoding="utf-8")

    def clear(self) -> None:
        """Remove every entry by recreating the cache root."""
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def entry_path(self, file_path: Path) -> Path:
        # Keyed on the raw filesystem bytes of the path.
        key = hashlib.sha256(os.fsencode(file_path)).hexdigest()
        return self.cache_dir / f"{key}.json"
