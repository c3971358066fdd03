# src/optimal_yahtzee/__init__.py
"""optimal-yahtzee - exact optimal strategy for solitaire Yahtzee.

The solver computes, by backward induction over every reachable scorecard,
the expected final score of optimal play (about 254.59 points from an empty
scorecard) and the best move in any position.
"""

from __future__ import annotations

import tomllib
from importlib import import_module
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _v
from pathlib import Path

# Path to the project's pyproject.toml for local version fallback
PYPROJECT_TOML = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"

# --------------------------------------------------------------------------- #
# Lazily expose the "friendly" surface
# Heavy modules (numba, pyarrow) are imported only when accessed.
# --------------------------------------------------------------------------- #

__all__ = [  # loads lazily, that's why reportUnsupportedDunderAll is triggered
    "Category",  # pyright: ignore[reportUnsupportedDunderAll]
    "ScorecardState",  # pyright: ignore[reportUnsupportedDunderAll]
    "MemoCache",  # pyright: ignore[reportUnsupportedDunderAll]
    "ExpectationEngine",  # pyright: ignore[reportUnsupportedDunderAll]
    "LayerScheduler",  # pyright: ignore[reportUnsupportedDunderAll]
    "Solver",  # pyright: ignore[reportUnsupportedDunderAll]
    "solve",  # pyright: ignore[reportUnsupportedDunderAll]
    "format_version",  # pyright: ignore[reportUnsupportedDunderAll]
]

_LAZY_IMPORTS = {
    "Category": "optimal_yahtzee.scoring",
    "ScorecardState": "optimal_yahtzee.scorecard",
    "MemoCache": "optimal_yahtzee.cache",
    "ExpectationEngine": "optimal_yahtzee.engine",
    "LayerScheduler": "optimal_yahtzee.scheduler",
    "Solver": "optimal_yahtzee.solver",
    "solve": "optimal_yahtzee.solver",
    "format_version": "optimal_yahtzee.rules",
}


def __getattr__(name: str):  # pragma: no cover - simple dynamic loader
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(module_name)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


def _read_version_from_toml() -> str:
    """Return the package version declared in ``pyproject.toml``."""
    with PYPROJECT_TOML.open("rb") as fh:
        data = tomllib.load(fh)
    return data["project"]["version"]


try:
    __version__ = _v("optimal-yahtzee")
except PackageNotFoundError:
    __version__ = _read_version_from_toml()
