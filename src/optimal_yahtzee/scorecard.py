# src/optimal_yahtzee/scorecard.py
"""Scorecard state model.

A :class:`ScorecardState` records only what future play depends on: which
boxes are filled, the upper-section total clamped at the bonus threshold, and
how many 50-point Yahtzees have been scored. Points already banked in the
lower section are irrelevant to future decisions and are not stored.

The canonical cache key (:attr:`ScorecardState.code`) collapses the Yahtzee
counter to "bonus eligible or not", the same way the upper total collapses
everything at or above the threshold.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Iterator

from optimal_yahtzee.dice import validate_dice
from optimal_yahtzee.errors import InvalidCategoryError, InvariantViolation
from optimal_yahtzee.rules import (
    N_CATEGORIES,
    N_DICE,
    N_UPPER,
    UPPER_BONUS,
    UPPER_BONUS_THRESHOLD,
    YAHTZEE_BONUS,
    YAHTZEE_SCORE,
)
from optimal_yahtzee.scoring import (
    UPPER_CATEGORIES,
    Category,
    is_yahtzee,
    joker_score,
    score,
)

ALL_FILLED: int = (1 << N_CATEGORIES) - 1
UPPER_MASK: int = (1 << N_UPPER) - 1
_UPPER_SHIFT = N_CATEGORIES
_ELIGIBLE_SHIFT = N_CATEGORIES + UPPER_BONUS_THRESHOLD.bit_length()
STATE_CODE_BITS: int = _ELIGIBLE_SHIFT + 1


def state_code(filled: int, upper: int, eligible: bool | int) -> int:
    """Pack a canonical scorecard key without building a state object."""
    return filled | upper << _UPPER_SHIFT | int(bool(eligible)) << _ELIGIBLE_SHIFT


@dataclass(frozen=True, slots=True)
class ScorecardState:
    """Immutable scorecard summary.

    Attributes
    ----------
    filled:
        Bitset over :class:`Category` values.
    upper:
        Upper-section total, clamped to ``UPPER_BONUS_THRESHOLD``.
    yahtzees:
        50-point Yahtzees scored so far: the Yahtzee box itself plus every
        bonus Yahtzee.
    """

    filled: int = 0
    upper: int = 0
    yahtzees: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.filled <= ALL_FILLED:
            raise InvariantViolation(f"filled bitset out of range: {self.filled:#x}")
        if not 0 <= self.upper <= UPPER_BONUS_THRESHOLD:
            raise InvariantViolation(f"upper total out of range: {self.upper}")
        if self.upper and not self.filled & UPPER_MASK:
            raise InvariantViolation(f"upper total {self.upper} with no upper box filled")
        if self.yahtzees < 0 or self.yahtzees > self.filled_count:
            raise InvariantViolation(f"impossible Yahtzee count: {self.yahtzees}")
        if self.yahtzees and not self.filled & Category.YAHTZEE.bit:
            raise InvariantViolation("Yahtzee counted while the Yahtzee box is open")

    # ----------------------------- views -----------------------------
    @property
    def filled_count(self) -> int:
        return self.filled.bit_count()

    @property
    def open_count(self) -> int:
        return N_CATEGORIES - self.filled_count

    @property
    def bonus_eligible(self) -> bool:
        """True once the Yahtzee box holds 50, enabling the repeat bonus."""
        return self.yahtzees > 0

    def is_filled(self, category: Category) -> bool:
        return bool(self.filled & category.bit)

    def canonical(self) -> "ScorecardState":
        """Equivalent state with the Yahtzee counter collapsed to 0/1."""
        if self.yahtzees <= 1:
            return self
        return ScorecardState(self.filled, self.upper, 1)

    @property
    def code(self) -> int:
        """Packed canonical key: ``filled | upper << 13 | eligible << 19``."""
        return state_code(self.filled, self.upper, self.bonus_eligible)

    @classmethod
    def from_code(cls, code: int) -> "ScorecardState":
        if code < 0 or code >> STATE_CODE_BITS:
            raise InvariantViolation(f"not a scorecard code: {code:#x}")
        filled = code & ALL_FILLED
        upper = (code >> _UPPER_SHIFT) & ((1 << (_ELIGIBLE_SHIFT - _UPPER_SHIFT)) - 1)
        return cls(filled, upper, (code >> _ELIGIBLE_SHIFT) & 1)

    @classmethod
    def from_categories(
        cls, filled: Iterable[Category], *, upper: int = 0, yahtzees: int = 0
    ) -> "ScorecardState":
        """Build a state from the filled boxes; *upper* is clamped."""
        bits = 0
        for category in filled:
            bits |= Category(category).bit
        return cls(bits, min(upper, UPPER_BONUS_THRESHOLD), yahtzees)

    def __str__(self) -> str:
        boxes = ",".join(c.name for c in Category if self.is_filled(c)) or "-"
        return f"ScorecardState(filled={boxes}, upper={self.upper}, yahtzees={self.yahtzees})"


EMPTY_SCORECARD = ScorecardState()


# --------------------------------------------------------------------------- #
# Queries
# --------------------------------------------------------------------------- #


def legal_categories(state: ScorecardState) -> tuple[Category, ...]:
    """Open boxes in scoresheet order; empty only for a finished game."""
    return tuple(c for c in Category if not state.filled & c.bit)


def is_terminal(state: ScorecardState) -> bool:
    return state.filled == ALL_FILLED


def upper_bonus(state: ScorecardState) -> int:
    return UPPER_BONUS if state.upper >= UPPER_BONUS_THRESHOLD else 0


def final_score_contribution(state: ScorecardState) -> int:
    """Bonus points implied by *state*: upper bonus plus Yahtzee bonuses."""
    return upper_bonus(state) + YAHTZEE_BONUS * max(0, state.yahtzees - 1)


def joker_active(state: ScorecardState, dice: Iterable[int]) -> bool:
    """A Yahtzee rolled after the Yahtzee box was filled (with 50 or 0)."""
    return state.is_filled(Category.YAHTZEE) and is_yahtzee(dice)


def scoring_options(state: ScorecardState, dice: Iterable[int]) -> tuple[Category, ...]:
    """Boxes *dice* may be scored in, applying the forced joker rule.

    Inputs
    ------
    state (ScorecardState):
        Current scorecard.
    dice (Iterable[int]):
        Final dice of the turn.

    Returns
    -------
    tuple[Category, ...]:
        The matching upper box if it is open. Once it is filled, every open
        box: lower boxes take the joker value, upper boxes take zero.
        Without a joker this is :func:`legal_categories`.
    """
    config = validate_dice(dice)
    open_boxes = legal_categories(state)
    if not joker_active(state, config):
        return open_boxes
    matching = UPPER_CATEGORIES[config[0] - 1]
    if matching in open_boxes:
        return (matching,)
    return open_boxes


def score_in_context(
    state: ScorecardState, category: Category, dice: Iterable[int]
) -> tuple[int, int]:
    """Return ``(points, bonus)`` for scoring *dice* in *category*.

    Raises
    ------
    InvalidCategoryError:
        If *category* is filled or the joker rule forbids it.
    """
    config = validate_dice(dice)
    category = Category(category)
    if state.is_filled(category):
        raise InvalidCategoryError(f"{category.label} is already filled")
    if not joker_active(state, config):
        return score(category, config), 0
    if category not in scoring_options(state, config):
        raise InvalidCategoryError(f"joker rule does not allow {category.label} for {config}")
    bonus = YAHTZEE_BONUS if state.bonus_eligible else 0
    return joker_score(category, config[0]), bonus


def apply_category(
    state: ScorecardState, category: Category, dice: Iterable[int]
) -> ScorecardState:
    """Score *dice* in *category* and return the successor state.

    The successor's filled bitset is a strict superset of *state*'s.
    """
    category = Category(category)
    points, bonus = score_in_context(state, category, dice)
    upper = state.upper
    if category.is_upper:
        upper = min(UPPER_BONUS_THRESHOLD, upper + points)
    yahtzees = state.yahtzees
    if bonus or (category is Category.YAHTZEE and points == YAHTZEE_SCORE):
        yahtzees += 1
    return ScorecardState(state.filled | category.bit, upper, yahtzees)


# --------------------------------------------------------------------------- #
# State-space enumeration
# --------------------------------------------------------------------------- #


@functools.lru_cache(maxsize=1 << N_UPPER)
def reachable_upper_totals(filled: int) -> frozenset[int]:
    """Clamped upper totals reachable with the upper boxes in *filled*."""
    totals = {0}
    for category in UPPER_CATEGORIES:
        if filled & category.bit:
            totals = {
                min(UPPER_BONUS_THRESHOLD, t + category.face * k)
                for t in totals
                for k in range(N_DICE + 1)
            }
    return frozenset(totals)


def iter_layer(open_count: int) -> Iterator[ScorecardState]:
    """Reachable canonical states with exactly *open_count* open boxes."""
    if not 0 <= open_count <= N_CATEGORIES:
        raise ValueError(f"open_count must be in 0..{N_CATEGORIES}, got {open_count}")
    for boxes in combinations(range(N_CATEGORIES), N_CATEGORIES - open_count):
        filled = 0
        for b in boxes:
            filled |= 1 << b
        eligibility = (0, 1) if filled & Category.YAHTZEE.bit else (0,)
        for upper in sorted(reachable_upper_totals(filled & UPPER_MASK)):
            for yahtzees in eligibility:
                yield ScorecardState(filled, upper, yahtzees)


__all__ = [
    "ALL_FILLED",
    "UPPER_MASK",
    "STATE_CODE_BITS",
    "state_code",
    "ScorecardState",
    "EMPTY_SCORECARD",
    "legal_categories",
    "is_terminal",
    "upper_bonus",
    "final_score_contribution",
    "joker_active",
    "scoring_options",
    "score_in_context",
    "apply_category",
    "reachable_upper_totals",
    "iter_layer",
]
