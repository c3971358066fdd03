# src/optimal_yahtzee/turn.py  – Numba kernels for one turn
"""Backward induction inside a single turn.

Given ``final[r]`` – the best value of ending the turn with roll ``r``
(score now plus the value of the successor scorecard) – the kernels below
fill in the values with one and two rerolls left and the expectation at the
start of the turn:

* ``keep[k] = sum_r P(r | keep k) * value[r]`` over the CSR keep table, and
* ``value'[r] = max_{k subset of r} keep[k]``; keeping all of ``r`` carries
  its value forward, so scoring immediately is always among the options.

All loops run in ``nopython`` mode without the GIL so the layer scheduler's
worker threads overlap here.
"""

from __future__ import annotations

from dataclasses import dataclass

import numba as nb
import numpy as np

from optimal_yahtzee.dice import DiceTables
from optimal_yahtzee.rules import MAX_REROLLS

# ---------------------------------------------------------------------------
# 0.  Kernels
# ---------------------------------------------------------------------------


@nb.njit(cache=True, nogil=True)
def _expect_keeps_nb(
    values: np.ndarray,
    keep_ptr: np.ndarray,
    keep_rolls: np.ndarray,
    keep_probs: np.ndarray,
) -> np.ndarray:
    """Expected value of every kept multiset before the reroll."""
    n_keeps = keep_ptr.shape[0] - 1
    out = np.empty(n_keeps, dtype=np.float64)
    for k in range(n_keeps):
        acc = 0.0
        for j in range(keep_ptr[k], keep_ptr[k + 1]):
            acc += keep_probs[j] * values[keep_rolls[j]]
        out[k] = acc
    return out


@nb.njit(cache=True, nogil=True)
def _best_keeps_nb(
    keep_values: np.ndarray,
    roll_ptr: np.ndarray,
    roll_keeps: np.ndarray,
) -> np.ndarray:
    """Value of each roll when the best kept subset is chosen."""
    n_rolls = roll_ptr.shape[0] - 1
    out = np.empty(n_rolls, dtype=np.float64)
    for r in range(n_rolls):
        best = -np.inf
        for j in range(roll_ptr[r], roll_ptr[r + 1]):
            v = keep_values[roll_keeps[j]]
            if v > best:
                best = v
        out[r] = best
    return out


@nb.njit(cache=True, nogil=True)
def _turn_nb(
    final: np.ndarray,
    roll_probs: np.ndarray,
    keep_ptr: np.ndarray,
    keep_rolls: np.ndarray,
    keep_probs: np.ndarray,
    roll_ptr: np.ndarray,
    roll_keeps: np.ndarray,
    by_rerolls: np.ndarray,
    keep_values: np.ndarray,
) -> float:
    """Fill ``by_rerolls``/``keep_values`` in place; return the turn-start value."""
    n_rolls = final.shape[0]
    for r in range(n_rolls):
        by_rerolls[0, r] = final[r]
    for level in range(1, by_rerolls.shape[0]):
        kv = _expect_keeps_nb(by_rerolls[level - 1], keep_ptr, keep_rolls, keep_probs)
        keep_values[level - 1, :] = kv
        by_rerolls[level, :] = _best_keeps_nb(kv, roll_ptr, roll_keeps)
    start = 0.0
    top = by_rerolls.shape[0] - 1
    for r in range(n_rolls):
        start += roll_probs[r] * by_rerolls[top, r]
    return start


# ---------------------------------------------------------------------------
# 1.  Python wrapper
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class TurnTable:
    """All in-turn values for one scorecard.

    ``by_rerolls[n, r]`` is the value of holding roll ``r`` with ``n`` rerolls
    left; ``keep_values[n - 1, k]`` the value of keeping multiset ``k`` and
    rerolling the rest when ``n`` rerolls were left before that reroll.
    """

    by_rerolls: np.ndarray
    keep_values: np.ndarray
    start: float


def solve_turn(final: np.ndarray, tables: DiceTables, max_rerolls: int = MAX_REROLLS) -> TurnTable:
    """Run the in-turn induction for terminal values *final*."""
    final = np.ascontiguousarray(final, dtype=np.float64)
    if final.shape != (tables.n_rolls,):
        raise ValueError(f"expected {tables.n_rolls} final values, got shape {final.shape}")
    by_rerolls = np.empty((max_rerolls + 1, tables.n_rolls), dtype=np.float64)
    keep_values = np.empty((max_rerolls, tables.n_keeps), dtype=np.float64)
    start = _turn_nb(
        final,
        tables.roll_probs,
        tables.keep_ptr,
        tables.keep_rolls,
        tables.keep_probs,
        tables.roll_ptr,
        tables.roll_keeps,
        by_rerolls,
        keep_values,
    )
    return TurnTable(by_rerolls=by_rerolls, keep_values=keep_values, start=float(start))


__all__ = ["TurnTable", "solve_turn"]
