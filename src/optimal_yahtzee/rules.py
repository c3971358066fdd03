# src/optimal_yahtzee/rules.py
"""Fixed rule set for solitaire Yahtzee.

Everything the solver assumes about the game lives here: dice, scoresheet
layout, fixed category values and both bonuses. :func:`format_version`
condenses the rule set into the identifier stamped on persisted caches, so
any change to a constant below invalidates caches written before it.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass

# Bump when the on-disk layout of the cache changes without a rule change.
FORMAT_REVISION: int = 1

N_DICE: int = 5
FACES: int = 6
ROLLS_PER_TURN: int = 3
MAX_REROLLS: int = ROLLS_PER_TURN - 1

FULL_HOUSE_SCORE: int = 25
SMALL_STRAIGHT_SCORE: int = 30
LARGE_STRAIGHT_SCORE: int = 40
YAHTZEE_SCORE: int = 50

UPPER_BONUS_THRESHOLD: int = 63
UPPER_BONUS: int = 35
YAHTZEE_BONUS: int = 100

CATEGORY_NAMES: tuple[str, ...] = (
    "Ones",
    "Twos",
    "Threes",
    "Fours",
    "Fives",
    "Sixes",
    "Three of a Kind",
    "Four of a Kind",
    "Full House",
    "Small Straight",
    "Large Straight",
    "Yahtzee",
    "Chance",
)
N_CATEGORIES: int = len(CATEGORY_NAMES)
N_UPPER: int = FACES


@dataclass(frozen=True)
class RuleSet:
    """Parameters that determine every expected value the solver produces."""

    n_dice: int = N_DICE
    faces: int = FACES
    rolls_per_turn: int = ROLLS_PER_TURN
    categories: tuple[str, ...] = CATEGORY_NAMES
    full_house: int = FULL_HOUSE_SCORE
    small_straight: int = SMALL_STRAIGHT_SCORE
    large_straight: int = LARGE_STRAIGHT_SCORE
    yahtzee: int = YAHTZEE_SCORE
    upper_bonus_threshold: int = UPPER_BONUS_THRESHOLD
    upper_bonus: int = UPPER_BONUS
    yahtzee_bonus: int = YAHTZEE_BONUS
    joker: str = "forced-any-open-box"

    def fingerprint(self) -> str:
        """Return a short, stable hash of the rule parameters."""
        payload = json.dumps(asdict(self), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


STANDARD_RULES = RuleSet()


def format_version(rules: RuleSet = STANDARD_RULES) -> str:
    """Version tag for persisted caches computed under *rules*."""
    return f"v{FORMAT_REVISION}-{rules.fingerprint()}"


__all__ = [
    "FORMAT_REVISION",
    "N_DICE",
    "FACES",
    "ROLLS_PER_TURN",
    "MAX_REROLLS",
    "FULL_HOUSE_SCORE",
    "SMALL_STRAIGHT_SCORE",
    "LARGE_STRAIGHT_SCORE",
    "YAHTZEE_SCORE",
    "UPPER_BONUS_THRESHOLD",
    "UPPER_BONUS",
    "YAHTZEE_BONUS",
    "CATEGORY_NAMES",
    "N_CATEGORIES",
    "N_UPPER",
    "RuleSet",
    "STANDARD_RULES",
    "format_version",
]
