# src/optimal_yahtzee/errors.py
"""Exception hierarchy for the solver.

Recoverable conditions derive from :class:`YahtzeeError` so a front end can
catch them in one place. Broken invariants derive from :class:`AssertionError`
instead: they signal a logic or data-corruption bug and are never caught
inside the package.
"""

from __future__ import annotations


class YahtzeeError(Exception):
    """Base class for conditions a caller may recover from."""


class InputError(YahtzeeError, ValueError):
    """Malformed caller input; no state was touched."""


class InvalidDiceError(InputError):
    """Dice of the wrong count or with faces outside ``1..faces``."""


class InvalidCategoryError(InputError):
    """Unknown category, or one that is already filled."""


class InvalidRerollsError(InputError):
    """Rerolls remaining outside ``0..MAX_REROLLS``."""


class CacheFormatError(YahtzeeError):
    """A persisted cache is unreadable or carries a different version tag."""

    def __init__(self, message: str, *, found: str | None = None, expected: str | None = None):
        super().__init__(message)
        self.found = found
        self.expected = expected


class CachePersistenceError(YahtzeeError, OSError):
    """Writing or replacing the persisted cache failed."""


class InvariantViolation(AssertionError):
    """Internal state that cannot occur unless the code or data is corrupt."""


class CacheConsistencyError(InvariantViolation):
    """A cache key was written twice with different values."""


__all__ = [
    "YahtzeeError",
    "InputError",
    "InvalidDiceError",
    "InvalidCategoryError",
    "InvalidRerollsError",
    "CacheFormatError",
    "CachePersistenceError",
    "InvariantViolation",
    "CacheConsistencyError",
]
