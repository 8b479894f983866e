"""Key sanitization and label helpers shared by the organizer."""

from __future__ import annotations

import re
from typing import Any, Iterable

_KEY_STRIP_RE = re.compile(r"[^a-z0-9_\-]")


def sanitize_key(value: Any) -> str:
    """Lower-case a key and keep only ``[a-z0-9_-]``.

    Non-string input sanitizes to the empty string.
    """
    if not isinstance(value, str):
        return ""
    return _KEY_STRIP_RE.sub("", value.lower())


def sanitize_keys(values: Iterable[Any]) -> tuple[str, ...]:
    """Sanitize each key, drop empties and keep the first occurrence of duplicates."""
    seen: set[str] = set()
    keys: list[str] = []
    for value in values:
        key = sanitize_key(value)
        if not key or key in seen:
            continue
        seen.add(key)
        keys.append(key)
    return tuple(keys)


def naive_singular(label: str) -> str:
    # Strips every trailing "s", matching rtrim($label, 's').
    return label.rstrip("s")
