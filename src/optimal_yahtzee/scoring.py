# src/optimal_yahtzee/scoring.py  – Numba- & cache-ready
"""Category definitions and pure scoring rules.

Scores are computed from face counts by a small Numba kernel and tabulated
once per process by :func:`build_score_table` (252 rolls x 13 categories for
five d6). Context-dependent scoring (the joker rule and the Yahtzee bonus)
lives in :mod:`optimal_yahtzee.scorecard`.
"""

from __future__ import annotations

import functools
from enum import IntEnum
from typing import Iterable

import numba as nb
import numpy as np

from optimal_yahtzee.dice import DiceTables, dice_tables, face_counts, validate_dice
from optimal_yahtzee.errors import InvalidCategoryError
from optimal_yahtzee.rules import (
    CATEGORY_NAMES,
    FULL_HOUSE_SCORE,
    LARGE_STRAIGHT_SCORE,
    N_DICE,
    N_UPPER,
    SMALL_STRAIGHT_SCORE,
    YAHTZEE_SCORE,
)


class Category(IntEnum):
    """Scoresheet boxes in scoresheet order; the value is the bit index."""

    ONES = 0
    TWOS = 1
    THREES = 2
    FOURS = 3
    FIVES = 4
    SIXES = 5
    THREE_OF_A_KIND = 6
    FOUR_OF_A_KIND = 7
    FULL_HOUSE = 8
    SMALL_STRAIGHT = 9
    LARGE_STRAIGHT = 10
    YAHTZEE = 11
    CHANCE = 12

    @property
    def is_upper(self) -> bool:
        return self < N_UPPER

    @property
    def face(self) -> int:
        """Face counted by an upper-section box (0 for lower boxes)."""
        return int(self) + 1 if self.is_upper else 0

    @property
    def bit(self) -> int:
        return 1 << int(self)

    @property
    def label(self) -> str:
        return CATEGORY_NAMES[int(self)]

    @classmethod
    def parse(cls, text: str) -> "Category":
        """Look a category up by enum name or printed label, case-insensitively."""
        key = text.strip().upper().replace(" ", "_").replace("-", "_")
        if key in cls.__members__:
            return cls[key]
        aliases = {"3K": cls.THREE_OF_A_KIND, "4K": cls.FOUR_OF_A_KIND,
                   "FH": cls.FULL_HOUSE, "SS": cls.SMALL_STRAIGHT,
                   "LS": cls.LARGE_STRAIGHT, "ACES": cls.ONES}
        if key in aliases:
            return aliases[key]
        raise InvalidCategoryError(f"unknown category {text!r}")


UPPER_CATEGORIES: tuple[Category, ...] = tuple(c for c in Category if c.is_upper)
LOWER_CATEGORIES: tuple[Category, ...] = tuple(c for c in Category if not c.is_upper)

# ---------------------------------------------------------------------------
# 0.  Low-level helpers  (all *nopython*-safe)
# ---------------------------------------------------------------------------


@nb.njit(cache=True)
def _longest_run(ctr: np.ndarray) -> int:
    """Length of the longest run of consecutive faces present in *ctr*."""
    best = run = 0
    for n in ctr:
        if n > 0:
            run += 1
            if run > best:
                best = run
        else:
            run = 0
    return best


@nb.njit(cache=True)
def _evaluate_nb(category: int, ctr: np.ndarray) -> int:
    """Score the roll with face counts *ctr* in box *category*.

    Args:
        category: Integer value of a :class:`Category`.
        ctr: Counts for faces one through six.

    Returns:
        Points the box would receive, ignoring the joker rule.
    """
    total = 0
    top = 0
    for i in range(ctr.shape[0]):
        total += (i + 1) * ctr[i]
        if ctr[i] > top:
            top = ctr[i]

    if category < 6:
        return (category + 1) * ctr[category]
    if category == 6:
        return total if top >= 3 else 0
    if category == 7:
        return total if top >= 4 else 0
    if category == 8:
        has_three = has_two = False
        for n in ctr:
            if n == 3:
                has_three = True
            elif n == 2:
                has_two = True
        return FULL_HOUSE_SCORE if has_three and has_two else 0
    if category == 9:
        return SMALL_STRAIGHT_SCORE if _longest_run(ctr) >= 4 else 0
    if category == 10:
        return LARGE_STRAIGHT_SCORE if _longest_run(ctr) >= 5 else 0
    if category == 11:
        return YAHTZEE_SCORE if top == 5 else 0
    return total


# ---------------------------------------------------------------------------
# 1.  Pure-Python surface
# ---------------------------------------------------------------------------


def score(category: Category, dice: Iterable[int]) -> int:
    """Points *dice* earn in *category* under the plain scoring rules."""
    config = validate_dice(dice)
    ctr = np.asarray(face_counts(config), dtype=np.int64)
    return int(_evaluate_nb(int(category), ctr))


def is_yahtzee(dice: Iterable[int]) -> bool:
    """True when all dice show the same face."""
    return len(set(dice)) == 1


def joker_score(category: Category, face: int) -> int:
    """Points for a Yahtzee of *face* used as a joker in *category*."""
    if category.is_upper:
        return N_DICE * face if category.face == face else 0
    if category is Category.FULL_HOUSE:
        return FULL_HOUSE_SCORE
    if category is Category.SMALL_STRAIGHT:
        return SMALL_STRAIGHT_SCORE
    if category is Category.LARGE_STRAIGHT:
        return LARGE_STRAIGHT_SCORE
    if category is Category.YAHTZEE:
        return YAHTZEE_SCORE
    return N_DICE * face


def build_score_table(tables: DiceTables | None = None) -> np.ndarray:
    """Return ``table[roll_index, category]`` for every roll in *tables*.

    Performance tip
    -----------------
    The table is cached per :class:`DiceTables` instance, so callers can
    request it freely; the engine looks scores up instead of re-scoring.
    """
    return _score_table(tables if tables is not None else dice_tables())


@functools.lru_cache(maxsize=8)
def _score_table(tables: DiceTables) -> np.ndarray:
    table = np.zeros((tables.n_rolls, len(Category)), dtype=np.int64)
    for r in range(tables.n_rolls):
        ctr = tables.roll_counts[r]
        for cat in Category:
            table[r, int(cat)] = _evaluate_nb(int(cat), ctr)
    table.setflags(write=False)
    return table


__all__ = [
    "Category",
    "UPPER_CATEGORIES",
    "LOWER_CATEGORIES",
    "score",
    "is_yahtzee",
    "joker_score",
    "build_score_table",
]
