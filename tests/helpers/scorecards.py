"""Scorecard builders shared by the unit and integration tests."""

from __future__ import annotations

from optimal_yahtzee.scorecard import ALL_FILLED, ScorecardState
from optimal_yahtzee.scoring import Category


def only_open(*open_boxes: Category, upper: int = 0, yahtzees: int = 0) -> ScorecardState:
    """Scorecard with every box filled except *open_boxes*."""
    filled = ALL_FILLED
    for category in open_boxes:
        filled &= ~category.bit
    return ScorecardState(filled, upper, yahtzees)


def with_filled(*filled_boxes: Category, upper: int = 0, yahtzees: int = 0) -> ScorecardState:
    """Scorecard with exactly *filled_boxes* filled."""
    return ScorecardState.from_categories(filled_boxes, upper=upper, yahtzees=yahtzees)
