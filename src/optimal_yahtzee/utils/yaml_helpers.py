# src/optimal_yahtzee/utils/yaml_helpers.py
"""
YAML parsing helpers. Exposes ``expand_dotted_keys`` to turn flat mappings
such as ``{"solver.n_jobs": 4}`` into nested dictionaries.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def expand_dotted_keys(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Return a nested dict from *mapping* that may contain dotted keys."""

    result: dict[str, Any] = {}
    for raw_key, raw_value in mapping.items():
        value = expand_dotted_keys(raw_value) if isinstance(raw_value, Mapping) else raw_value
        parts = [p for p in str(raw_key).split(".") if p] if isinstance(raw_key, str) else [raw_key]
        if not parts:
            continue
        target = result
        for part in parts[:-1]:
            existing = target.setdefault(part, {})
            if not isinstance(existing, dict):
                raise TypeError(
                    f"Cannot expand dotted key {raw_key!r}; {part!r} is already set to a non-mapping value",
                )
            target = existing
        last = parts[-1]
        existing_leaf = target.get(last)
        if isinstance(existing_leaf, dict) and isinstance(value, dict):
            existing_leaf.update(value)
        else:
            target[last] = value
    return result


__all__ = ["expand_dotted_keys"]
