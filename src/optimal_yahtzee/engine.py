# src/optimal_yahtzee/engine.py
"""Expectation engine: optimal play and exact expected score.

High-level flow
---------------
* ExpectationEngine.value_at_turn_start gives the expected *additional*
  score from a scorecard at the start of a turn.  It needs the start
  values of every successor scorecard, which it reads from the cache (or
  computes first, recursing at most one level per open box).
* ExpectationEngine.turn_table runs the in-turn induction for one
  scorecard and writes every TurnState value into the cache.
* ExpectationEngine.best_action answers single queries and applies the
  fixed tie-break order.

The engine keeps no state of its own; every value lives in the
MemoCache passed to the constructor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Union

import numpy as np

from optimal_yahtzee.cache import MemoCache
from optimal_yahtzee.dice import DiceTables, canonical_selections, dice_tables, validate_dice
from optimal_yahtzee.errors import InvalidCategoryError, InvalidRerollsError
from optimal_yahtzee.rules import (
    FACES,
    MAX_REROLLS,
    N_DICE,
    UPPER_BONUS_THRESHOLD,
    YAHTZEE_SCORE,
)
from optimal_yahtzee.scorecard import (
    EMPTY_SCORECARD,
    STATE_CODE_BITS,
    ScorecardState,
    apply_category,
    is_terminal,
    legal_categories,
    score_in_context,
    scoring_options,
    state_code,
    upper_bonus,
)
from optimal_yahtzee.scoring import Category, build_score_table
from optimal_yahtzee.turn import TurnTable, solve_turn
from optimal_yahtzee.types import DiceConfig, KeptDice

__all__ = [
    "EPSILON",
    "TurnState",
    "RerollAction",
    "ScoreAction",
    "Action",
    "ExpectationEngine",
]

LOGGER = logging.getLogger(__name__)

# Values closer than this are treated as equal when choosing an action.
EPSILON: float = 1e-9

_ROLL_SHIFT = STATE_CODE_BITS
_REROLL_SHIFT = STATE_CODE_BITS + 8


# ---------------------------------------------------------------------------
# Keys & actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TurnState:
    """A scorecard, the dice showing and the rerolls still available."""

    scorecard: ScorecardState
    dice: DiceConfig
    rerolls: int

    @property
    def code(self) -> int:
        """Cache key; never collides with a bare scorecard code."""
        roll = dice_tables().roll_index[self.dice]
        return _turn_code(self.scorecard.code, roll, self.rerolls)


def _turn_code(scorecard_code: int, roll: int, rerolls: int) -> int:
    return scorecard_code | (roll + 1) << _ROLL_SHIFT | rerolls << _REROLL_SHIFT


@dataclass(frozen=True, slots=True)
class RerollAction:
    """Keep *keep* and reroll the other dice."""

    keep: KeptDice

    def __str__(self) -> str:
        if not self.keep:
            return "reroll all dice"
        return "keep " + " ".join(map(str, self.keep)) + " and reroll the rest"


@dataclass(frozen=True, slots=True)
class ScoreAction:
    """Score the current dice in *category*."""

    category: Category

    def __str__(self) -> str:
        return f"score as {self.category.label}"


Action = Union[RerollAction, ScoreAction]


def _score_priority(category: Category, points: int) -> tuple[int, int]:
    # Higher immediate points first, then scoresheet order.
    return (-points, int(category))


def _keep_priority(kept: KeptDice) -> tuple[int, tuple[int, ...]]:
    # More dice kept first, then the larger kept multiset.
    return (-len(kept), tuple(-p for p in reversed(kept)))


def _choose(candidates: list[tuple[float, tuple, object]]) -> tuple[object, float]:
    """Best candidate; values within EPSILON of the maximum tie on priority."""
    top = max(value for value, _, _ in candidates)
    tied = [c for c in candidates if c[0] >= top - EPSILON]
    value, _, choice = min(tied, key=lambda c: c[1])
    return choice, value


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ExpectationEngine:
    """Backward-induction solver over scorecards and dice.

    Parameters
    ----------
    cache:
        Store for every computed value. It may be shared between engines and
        threads; the engine itself holds no values.
    """

    def __init__(self, cache: MemoCache, *, tables: DiceTables | None = None) -> None:
        self.cache = cache
        self.tables = tables if tables is not None else dice_tables()
        if (self.tables.n_dice, self.tables.faces) != (N_DICE, FACES):
            raise ValueError(f"the scoring table is defined for {N_DICE}d{FACES} only")
        self.score_table = build_score_table(self.tables)
        self._yahtzee_rolls = tuple(
            self.tables.roll_index[(face,) * N_DICE] for face in range(1, FACES + 1)
        )

    # ----------------------------- start of turn -----------------------------
    def value_at_turn_start(self, scorecard: ScorecardState) -> float:
        """Expected additional score from *scorecard* before the first roll."""
        state = scorecard.canonical()
        code = state.code
        hit = self.cache.get(code)
        if hit is not None:
            return hit
        if is_terminal(state):
            value = float(upper_bonus(state))
        else:
            value = solve_turn(self._final_values(state), self.tables).start
        self.cache.put(code, value)
        return value

    def expected_score_at_game_start(self) -> float:
        """Expected final score of an optimally played game."""
        return self.value_at_turn_start(EMPTY_SCORECARD)

    def _successor_value(self, filled: int, upper: int, eligible: bool) -> float:
        hit = self.cache.get(state_code(filled, upper, eligible))
        if hit is not None:
            return hit
        return self.value_at_turn_start(ScorecardState(filled, upper, int(eligible)))

    def _final_values(self, state: ScorecardState) -> np.ndarray:
        """Best value of scoring each roll now, successors included."""
        tables = self.tables
        eligible = state.bonus_eligible
        best = np.full(tables.n_rolls, -np.inf, dtype=np.float64)
        for category in legal_categories(state):
            points = self.score_table[:, int(category)]
            filled = state.filled | category.bit
            if category.is_upper:
                face = category.face
                after = np.array(
                    [
                        self._successor_value(
                            filled, min(UPPER_BONUS_THRESHOLD, state.upper + face * n), eligible
                        )
                        for n in range(N_DICE + 1)
                    ]
                )
                future = after[tables.roll_counts[:, face - 1]]
            elif category is Category.YAHTZEE:
                scratched = self._successor_value(filled, state.upper, eligible)
                scored = self._successor_value(filled, state.upper, True)
                future = np.where(points == YAHTZEE_SCORE, scored, scratched)
            else:
                future = self._successor_value(filled, state.upper, eligible)
            np.maximum(best, points + future, out=best)

        if state.is_filled(Category.YAHTZEE):
            for roll in self._yahtzee_rolls:
                best[roll] = max(
                    value for _, value, _ in self._score_values(state, tables.rolls[roll])
                )
        return best

    def _score_values(
        self, state: ScorecardState, dice: DiceConfig
    ) -> list[tuple[Category, float, int]]:
        """``(category, value, immediate points)`` for each permitted box."""
        out = []
        for category in scoring_options(state, dice):
            points, bonus = score_in_context(state, category, dice)
            after = apply_category(state, category, dice)
            gained = points + bonus
            out.append((category, gained + self.value_at_turn_start(after), gained))
        return out

    # ----------------------------- within a turn -----------------------------
    def turn_table(self, scorecard: ScorecardState) -> TurnTable:
        """Solve the whole turn for *scorecard* and cache every TurnState."""
        state = scorecard.canonical()
        if is_terminal(state):
            raise InvalidCategoryError("the game is over; no turn to play")
        table = solve_turn(self._final_values(state), self.tables)
        self.cache.put(state.code, table.start)
        base = state.code
        self.cache.put_many(
            (_turn_code(base, roll, rerolls), float(table.by_rerolls[rerolls, roll]))
            for rerolls in range(table.by_rerolls.shape[0])
            for roll in range(self.tables.n_rolls)
        )
        LOGGER.debug(
            "Turn table solved",
            extra={"stage": "engine", "scorecard": str(state), "start": table.start},
        )
        return table

    def value_after_roll(
        self, scorecard: ScorecardState, dice: Iterable[int], rerolls: int
    ) -> float:
        """Expected additional score holding *dice* with *rerolls* left."""
        config = validate_dice(dice)
        rerolls = _check_rerolls(rerolls)
        state = scorecard.canonical()
        if is_terminal(state):
            raise InvalidCategoryError("the game is over; no turn to play")
        key = _turn_code(state.code, self.tables.roll_index[config], rerolls)
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        table = self.turn_table(state)
        return float(table.by_rerolls[rerolls, self.tables.roll_index[config]])

    def _roll_values(self, state: ScorecardState, rerolls: int) -> np.ndarray:
        """``value_after_roll`` for every roll of a canonical, non-terminal *state*."""
        base = state.code
        values = [
            self.cache.get(_turn_code(base, roll, rerolls)) for roll in range(self.tables.n_rolls)
        ]
        if any(v is None for v in values):
            return self.turn_table(state).by_rerolls[rerolls]
        return np.array(values, dtype=np.float64)

    # ----------------------------- decisions -----------------------------
    def scoring_candidates(
        self, scorecard: ScorecardState, dice: Iterable[int]
    ) -> list[tuple[ScoreAction, float]]:
        """Every permitted box with its value, best first."""
        config = validate_dice(dice)
        state = scorecard.canonical()
        if is_terminal(state):
            raise InvalidCategoryError("the game is over; no category is open")
        ranked = sorted(
            self._score_values(state, config),
            key=lambda c: (-c[1], _score_priority(c[0], c[2])),
        )
        return [(ScoreAction(category), value) for category, value, _ in ranked]

    def reroll_candidates(
        self, scorecard: ScorecardState, dice: Iterable[int], rerolls: int
    ) -> list[tuple[RerollAction, float]]:
        """Every distinct proper kept subset with its value, best first."""
        config = validate_dice(dice)
        rerolls = _check_rerolls(rerolls)
        if rerolls == 0:
            return []
        state = scorecard.canonical()
        if is_terminal(state):
            raise InvalidCategoryError("the game is over; no turn to play")
        tables = self.tables
        after = self._roll_values(state, rerolls - 1)
        out = []
        for kept in canonical_selections(config):
            if len(kept) == N_DICE:
                continue
            k = tables.keep_index[kept]
            lo, hi = tables.keep_ptr[k], tables.keep_ptr[k + 1]
            value = float(np.dot(tables.keep_probs[lo:hi], after[tables.keep_rolls[lo:hi]]))
            out.append((RerollAction(kept), value))
        out.sort(key=lambda c: (-c[1], _keep_priority(c[0].keep)))
        return out

    def best_action(
        self, scorecard: ScorecardState, dice: Iterable[int], rerolls: int
    ) -> tuple[Action, float]:
        """Optimal action and its expected additional score.

        Ties within :data:`EPSILON` are broken by a fixed order: scoring
        prefers more immediate points, then the earlier box; rerolling
        prefers keeping more dice, then the larger kept faces. Keeping every
        die is the same as scoring now.
        """
        config = validate_dice(dice)
        rerolls = _check_rerolls(rerolls)
        state = scorecard.canonical()
        if is_terminal(state):
            raise InvalidCategoryError("the game is over; no category is open")

        scores = [
            (value, _score_priority(category, points), ScoreAction(category))
            for category, value, points in self._score_values(state, config)
        ]
        score_action, score_value = _choose(scores)
        if rerolls == 0:
            return score_action, score_value  # type: ignore[return-value]

        keeps: list[tuple[float, tuple, object]] = [
            (score_value, _keep_priority(config), score_action)
        ]
        keeps.extend(
            (value, _keep_priority(action.keep), action)
            for action, value in self.reroll_candidates(state, config, rerolls)
        )
        action, value = _choose(keeps)
        return action, value  # type: ignore[return-value]


def _check_rerolls(rerolls: int) -> int:
    if isinstance(rerolls, bool) or not isinstance(rerolls, (int, np.integer)):
        raise InvalidRerollsError(f"rerolls must be an integer, got {rerolls!r}")
    if not 0 <= rerolls <= MAX_REROLLS:
        raise InvalidRerollsError(f"rerolls must be in 0..{MAX_REROLLS}, got {rerolls}")
    return int(rerolls)
