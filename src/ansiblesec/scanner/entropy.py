"""Shannon entropy scoring for secrets that have no known signature."""

from __future__ import annotations

import math
import re
from collections import Counter

MIN_CANDIDATE_LENGTH = 20

_QUOTED = re.compile(r"""["']([^"']{20,})["']""")
_KEY_VALUE = re.compile(r":\s*([a-zA-Z0-9+/=_-]{20,})")


def shannon_entropy(text: str) -> float:
    """Bits per character of ``text``'s character frequency distribution.

    Depends only on character frequencies, so any reordering of ``text``
    scores the same. A single repeated character scores 0.
    """
    if not text:
        return 0.0

    length = len(text)
    entropy = 0.0
    for count in Counter(text).values():
        p = count / length
        entropy -= p * math.log2(p)
    return entropy


def extract_candidates(line: str) -> list[tuple[int, str]]:
    """Return ``(offset, substring)`` pairs worth scoring in ``line``.

    Quoted strings come first, then ``key: value`` values. Both strategies
    run independently, so one substring can be returned twice.
    """
    candidates: list[tuple[int, str]] = []
    for m in _QUOTED.finditer(line):
        candidates.append((m.start(1), m.group(1)))
    for m in _KEY_VALUE.finditer(line):
        candidates.append((m.start(1), m.group(1)))
    return candidates
