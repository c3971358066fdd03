# src/optimal_yahtzee/config.py
"""Configuration schemas and helpers for the solver and its CLI.

Defines dataclasses describing cache persistence and precompute settings and
includes utilities for loading YAML-based application configs and applying
``section.option=value`` overrides from the command line.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, Mapping, get_args, get_type_hints

import yaml  # type: ignore[import-untyped]

from optimal_yahtzee.rules import N_CATEGORIES
from optimal_yahtzee.types import normalize_compression
from optimal_yahtzee.utils.yaml_helpers import expand_dotted_keys

# ─────────────────────────────────────────────────────────────────────────────
# Dataclasses (schema)
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class CacheConfig:
    """Where and how the value table is persisted."""

    path: Path | None = Path("yahtzee_values.parquet")
    compression: str = "zstd"
    checkpoint_every_layer: bool = True
    """Rewrite the cache file after each completed layer."""


@dataclass
class SolverConfig:
    """Precompute parameters."""

    n_jobs: int | None = None
    chunk_size: int = 256
    max_open: int = N_CATEGORIES
    progress: bool = True


@dataclass
class AppConfig:
    """Top-level application configuration."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    log_level: str = "INFO"

    def validate(self) -> "AppConfig":
        """Check value ranges; raise :class:`ValueError` on the first problem."""
        self.cache.compression = normalize_compression(self.cache.compression)
        if self.solver.n_jobs is not None and self.solver.n_jobs < 1:
            raise ValueError(f"solver.n_jobs must be positive, got {self.solver.n_jobs}")
        if self.solver.chunk_size < 1:
            raise ValueError(f"solver.chunk_size must be positive, got {self.solver.chunk_size}")
        if not 0 <= self.solver.max_open <= N_CATEGORIES:
            raise ValueError(
                f"solver.max_open must be in 0..{N_CATEGORIES}, got {self.solver.max_open}"
            )
        return self


# ─────────────────────────────────────────────────────────────────────────────
# Loader (one or more YAML overlays; dotted keys allowed)
# ─────────────────────────────────────────────────────────────────────────────


def _deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Later YAML files win key by key; nested sections merge instead of replacing."""
    merged: dict[str, Any] = dict(base)
    for key, val in overlay.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(val, Mapping):
            val = _deep_merge(current, val)
        merged[key] = val
    return merged


def _annotation_contains(annotation: Any, target: type) -> bool:
    """True if *target* appears in *annotation*, e.g. ``Path`` in ``Path | None``."""
    if annotation is target:
        return True
    return any(_annotation_contains(arg, target) for arg in get_args(annotation))


def _build(cls, section: Mapping[str, Any]) -> Any:
    """Instantiate a dataclass ``cls`` from a mapping of attributes."""
    obj = cls()
    type_hints = get_type_hints(cls)
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = set(section) - known
    if unknown:
        raise AttributeError(f"Unknown option(s) {sorted(unknown)} for {cls.__name__}")
    for name in known & set(section):
        val = section[name]
        annotation = type_hints.get(name)
        if annotation is not None and is_dataclass(annotation) and isinstance(val, Mapping):
            val = _build(annotation, val)
        if _annotation_contains(annotation, Path) and isinstance(val, str):
            val = Path(val)
        setattr(obj, name, val)
    return obj


def load_app_config(*overlays: Path) -> AppConfig:
    """Deterministically merge one or more YAML overlays into an :class:`AppConfig`.

    Files are read in the order provided, dotted keys are expanded, and later
    overlays always win.
    """
    data: dict[str, Any] = {}
    for path in overlays:
        with Path(path).open("r", encoding="utf-8") as fh:
            overlay = yaml.safe_load(fh) or {}
        if not isinstance(overlay, Mapping):
            raise TypeError(f"Config file {path} must contain a mapping")
        data = _deep_merge(data, expand_dotted_keys(overlay))

    cfg = AppConfig(
        cache=_build(CacheConfig, data.pop("cache", {}) or {}),
        solver=_build(SolverConfig, data.pop("solver", {}) or {}),
    )
    if "log_level" in data:
        cfg.log_level = str(data.pop("log_level"))
    if data:
        raise AttributeError(f"Unknown config section(s): {sorted(data)}")
    return cfg.validate()


_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _coerce(value: str, current: Any, annotation: Any | None = None) -> Any:
    """Turn the text of a ``--set`` override into the option's declared type.

    ``none``/``null`` clear optional options such as ``cache.path`` or
    ``solver.n_jobs``.
    """
    text = value.strip()
    if text.lower() in {"none", "null"} and _annotation_contains(annotation, type(None)):
        return None
    if isinstance(current, bool) or _annotation_contains(annotation, bool):
        if text.lower() in _TRUE:
            return True
        if text.lower() in _FALSE:
            return False
        raise ValueError(f"expected a boolean, got {value!r}")
    if isinstance(current, int) or _annotation_contains(annotation, int):
        return int(text)
    if isinstance(current, Path) or _annotation_contains(annotation, Path):
        return Path(text)
    return text


def apply_dot_overrides(cfg: AppConfig, pairs: list[str]) -> AppConfig:
    """Apply ``section.option=value`` overrides to *cfg*."""
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid override {pair!r}")
        key, raw = pair.split("=", 1)
        if "." not in key:
            if key == "log_level":
                cfg.log_level = raw
                continue
            raise ValueError(f"Invalid override {pair!r}")
        section_name, option = key.split(".", 1)
        section = getattr(cfg, section_name, None)
        if section is None or not is_dataclass(section):
            raise AttributeError(f"Unknown config section {section_name!r}")
        if not hasattr(section, option):
            raise AttributeError(f"Unknown option {option!r} in section {section_name!r}")
        current = getattr(section, option)
        annotation = get_type_hints(type(section)).get(option)
        setattr(section, option, _coerce(raw, current, annotation))
    return cfg.validate()


__all__ = [
    "CacheConfig",
    "SolverConfig",
    "AppConfig",
    "load_app_config",
    "apply_dot_overrides",
]
