"""Helpers for merging configuration layers and resolving configured paths."""

from copy import deepcopy
from pathlib import Path
from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; any other value in ``override``
    replaces the one in ``base``. Neither argument is modified.
    """
    merged = deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged

def resolve_path(path: str | Path, base_dir: str | Path | None = None) -> Path:
    """Expand ``~`` and anchor relative paths at ``base_dir`` when given."""
    resolved = Path(path).expanduser()
    if base_dir is not None and not resolved.is_absolute():
        resolved = Path(base_dir) / resolved
    return resolved
