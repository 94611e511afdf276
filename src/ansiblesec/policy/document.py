"""Structured document helpers — parsing, task discovery and line lookup.

Documents are treated as generic trees of mappings, sequences and scalars.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import yaml

TASK_SECTIONS = ("tasks", "handlers", "pre_tasks", "post_tasks")
BLOCK_SECTIONS = ("block", "rescue", "always")
VAR_SECTIONS = ("vars", "vars_files")
VAULT_MARKER = "$ANSIBLE_VAULT"

_MODULE_PREFIXES = ("ansible.builtin.", "ansible.legacy.")


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader that tolerates Ansible's custom scalar tags."""


def _construct_tagged_scalar(loader: yaml.SafeLoader, node: yaml.Node) -> str:
    return loader.construct_scalar(node)


DocumentLoader.add_constructor("!vault", _construct_tagged_scalar)
DocumentLoader.add_constructor("!unsafe", _construct_tagged_scalar)


def parse_document(text: str) -> Any:
    """Parse YAML text into a tree. Raises ``yaml.YAMLError`` on failure."""
    return yaml.load(text, Loader=DocumentLoader)


def module_name(key: object) -> str | None:
    """Short module name for a task key, with builtin collection prefixes removed."""
    if not isinstance(key, str):
        return None
    for prefix in _MODULE_PREFIXES:
        if key.startswith(prefix):
            return key[len(prefix) :]
    return key


def iter_tasks(document: Any) -> Iterator[dict]:
    """Yield every task mapping in a playbook, task file or handler file.

    Each mapping is yielded once, even when YAML aliases make the tree
    refer back to itself.
    """
    seen: set[int] = set()
    if isinstance(document, dict):
        yield from _tasks_in_play(document, seen)
    elif isinstance(document, list):
        for item in document:
            if not isinstance(item, dict):
                continue
            if _is_play(item):
                yield from _tasks_in_play(item, seen)
            else:
                yield from _expand_task(item, seen)


def iter_var_mappings(document: Any) -> Iterator[dict]:
    """Yield the ``vars``/``vars_files`` mappings of the document or its plays."""
    plays: list = []
    if isinstance(document, dict):
        plays = [document]
    elif isinstance(document, list):
        plays = [p for p in document if isinstance(p, dict)]
    for play in plays:
        for section in VAR_SECTIONS:
            value = play.get(section)
            if isinstance(value, dict):
                yield value


def is_vaulted(value: object) -> bool:
    return isinstance(value, str) and value.lstrip().startswith(VAULT_MARKER)


def approximate_line(text: str, token: str, occurrence: int = 0) -> int:
    """1-based line of the ``occurrence``-th line containing ``token``.

    Best-effort only; returns 1 when the token is not found often enough.
    """
    count = 0
    for line_num, line in enumerate(text.splitlines(), start=1):
        if token in line:
            if count == occurrence:
                return line_num
            count += 1
    return 1


def parse_octal_mode(mode: object) -> int | None:
    """Numeric value of a file mode, or None for symbolic/unparseable modes.

    Strings are read as octal (``"0644"``, ``"0o644"``, ``"644"``). Integers
    come from unquoted YAML, where ``0644`` already loads as octal, so they
    are used as-is.
    """
    if isinstance(mode, bool):
        return None
    if isinstance(mode, int):
        return mode
    if not isinstance(mode, str):
        return None
    cleaned = mode.strip().lower()
    if cleaned.startswith("0o"):
        cleaned = cleaned[2:]
    cleaned = cleaned.lstrip("0") or "0"
    try:
        return int(cleaned, 8)
    except ValueError:
        return None


def _is_play(item: dict) -> bool:
    return "hosts" in item or "import_playbook" in item or any(
        section in item for section in TASK_SECTIONS
    )


def _tasks_in_play(play: dict, seen: set[int]) -> Iterator[dict]:
    for section in TASK_SECTIONS:
        tasks = play.get(section)
        if not isinstance(tasks, list):
            continue
        for task in tasks:
            if isinstance(task, dict):
                yield from _expand_task(task, seen)


def _expand_task(task: dict, seen: set[int]) -> Iterator[dict]:
    if id(task) in seen:
        return
    seen.add(id(task))
    yield task
    for section in BLOCK_SECTIONS:
        nested = task.get(section)
        if not isinstance(nested, list):
            continue
        for child in nested:
            if isinstance(child, dict):
                yield from _expand_task(child, seen)
