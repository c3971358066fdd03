# src/optimal_yahtzee/dice.py
"""Dice outcome model.

Rolls are handled as *multisets* of faces (sorted tuples) rather than ordered
tuples: for five six-sided dice that is 252 configurations instead of 7776,
and a reroll decision is a choice of kept sub-multiset (at most 32, usually
far fewer) rather than one of 32 positional masks.

Probabilities come from exact multinomial counts. Every float probability is
a single correctly rounded division ``ways / faces**n`` of two integers;
:func:`enumerate_exact` exposes the underlying fractions.

:func:`dice_tables` packs the same model into CSR-style NumPy arrays consumed
by the numba kernels in :mod:`optimal_yahtzee.turn`.
"""

from __future__ import annotations

import functools
import math
from collections import Counter
from dataclasses import dataclass, field
from fractions import Fraction
from itertools import combinations_with_replacement, product
from typing import Iterable, Iterator

import numpy as np

from optimal_yahtzee.errors import InvalidDiceError
from optimal_yahtzee.rules import FACES, N_DICE
from optimal_yahtzee.types import DiceConfig, FaceCounts, Float64Array1D, Int64Array1D, KeptDice

# --------------------------------------------------------------------------- #
# 0.  Validation & small helpers
# --------------------------------------------------------------------------- #


def validate_dice(
    dice: Iterable[int], *, n_dice: int | None = N_DICE, faces: int = FACES
) -> DiceConfig:
    """Return *dice* as a canonical sorted tuple.

    Inputs
    ------
    dice (Iterable[int]):
        Face values in any order.
    n_dice (int | None):
        Required number of dice; ``None`` accepts any count (used for kept
        sub-multisets, whose size the caller checks).
    faces (int):
        Highest face value.

    Raises
    ------
    InvalidDiceError:
        On non-integer values, a wrong count or faces outside ``1..faces``.
    """
    try:
        values = tuple(sorted(int(d) for d in dice))
    except (TypeError, ValueError) as exc:
        raise InvalidDiceError(f"dice must be integers, got {dice!r}") from exc
    if n_dice is not None and len(values) != n_dice:
        raise InvalidDiceError(f"expected {n_dice} dice, got {len(values)}: {values}")
    if not all(1 <= v <= faces for v in values):
        raise InvalidDiceError(f"dice faces must be between 1 and {faces}: {values}")
    return values


def face_counts(config: Iterable[int], faces: int = FACES) -> FaceCounts:
    """Counts of faces ``1..faces`` in *config*."""
    ctr = Counter(config)
    return tuple(ctr.get(face, 0) for face in range(1, faces + 1))


def _ways(config: DiceConfig) -> int:
    """Number of ordered rolls that sort to *config*."""
    ways = math.factorial(len(config))
    for count in Counter(config).values():
        ways //= math.factorial(count)
    return ways


@functools.lru_cache(maxsize=64)
def _multisets(n: int, faces: int) -> tuple[DiceConfig, ...]:
    if n < 0:
        raise InvalidDiceError(f"cannot roll {n} dice")
    return tuple(combinations_with_replacement(range(1, faces + 1), n))


# --------------------------------------------------------------------------- #
# 1.  Public enumeration API
# --------------------------------------------------------------------------- #


def enumerate_exact(n: int, faces: int = FACES) -> Iterator[tuple[DiceConfig, Fraction]]:
    """Yield every distinct multiset of *n* dice with its exact probability."""
    total = faces**n
    for config in _multisets(n, faces):
        yield config, Fraction(_ways(config), total)


def enumerate_rolls(n: int, faces: int = FACES) -> Iterator[tuple[DiceConfig, float]]:
    """Yield every distinct multiset of *n* dice with its probability.

    The sequence is finite and restartable (each call starts over); rolling
    zero dice yields the single empty configuration with probability 1.
    """
    total = faces**n
    for config in _multisets(n, faces):
        yield config, _ways(config) / total


def reroll_outcomes(
    kept: Iterable[int], *, n_dice: int = N_DICE, faces: int = FACES
) -> list[tuple[DiceConfig, float]]:
    """Distribution over full configurations after keeping *kept*.

    Each multiset of rerolled dice produces a distinct combined multiset, so
    the result needs no merging.
    """
    held = validate_dice(kept, n_dice=None, faces=faces)
    if len(held) > n_dice:
        raise InvalidDiceError(f"cannot keep {len(held)} dice out of {n_dice}")
    return [
        (tuple(sorted(held + rolled)), prob)
        for rolled, prob in enumerate_rolls(n_dice - len(held), faces)
    ]


def canonical_selections(config: Iterable[int], faces: int = FACES) -> list[KeptDice]:
    """Distinct kept sub-multisets of *config*, smallest first.

    Positional selections that keep the same faces collapse to one entry,
    e.g. ``(2, 2, 5, 5, 5)`` has 12 selections instead of 32.
    """
    counts = face_counts(config, faces)
    selections = []
    for picked in product(*(range(c + 1) for c in counts)):
        kept: list[int] = []
        for face, n in enumerate(picked, 1):
            kept.extend([face] * n)
        selections.append(tuple(kept))
    selections.sort(key=lambda k: (len(k), k))
    return selections


# --------------------------------------------------------------------------- #
# 2.  Array tables for the numba kernels
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, eq=False)
class DiceTables:
    """Flattened dice model for a fixed ``(n_dice, faces)``.

    ``keep_ptr``/``keep_rolls``/``keep_probs`` form a CSR matrix mapping each
    kept multiset to the roll indices it can become; ``roll_ptr``/``roll_keeps``
    map each roll to the kept multisets it contains (itself included).
    """

    n_dice: int
    faces: int
    rolls: tuple[DiceConfig, ...]
    roll_index: dict[DiceConfig, int] = field(repr=False)
    roll_probs: Float64Array1D = field(repr=False)
    roll_counts: np.ndarray = field(repr=False)
    keeps: tuple[KeptDice, ...] = field(repr=False)
    keep_index: dict[KeptDice, int] = field(repr=False)
    keep_ptr: Int64Array1D = field(repr=False)
    keep_rolls: Int64Array1D = field(repr=False)
    keep_probs: Float64Array1D = field(repr=False)
    roll_ptr: Int64Array1D = field(repr=False)
    roll_keeps: Int64Array1D = field(repr=False)
    full_keep: Int64Array1D = field(repr=False)

    @property
    def n_rolls(self) -> int:
        return len(self.rolls)

    @property
    def n_keeps(self) -> int:
        return len(self.keeps)

    @property
    def empty_keep(self) -> int:
        return self.keep_index[()]

    def keeps_of(self, roll: int) -> Int64Array1D:
        """Keep indices reachable from roll index *roll*."""
        return self.roll_keeps[self.roll_ptr[roll] : self.roll_ptr[roll + 1]]


@functools.lru_cache(maxsize=8)
def dice_tables(n_dice: int = N_DICE, faces: int = FACES) -> DiceTables:
    """Build (once per process) the array form of the dice model."""
    rolls = _multisets(n_dice, faces)
    roll_index = {config: i for i, config in enumerate(rolls)}
    roll_probs = np.array([p for _, p in enumerate_rolls(n_dice, faces)], dtype=np.float64)
    roll_counts = np.array([face_counts(c, faces) for c in rolls], dtype=np.int64)

    keeps: list[KeptDice] = []
    for size in range(n_dice + 1):
        keeps.extend(_multisets(size, faces))
    keep_index = {kept: i for i, kept in enumerate(keeps)}

    keep_ptr = [0]
    keep_rolls: list[int] = []
    keep_probs: list[float] = []
    for kept in keeps:
        for outcome, prob in reroll_outcomes(kept, n_dice=n_dice, faces=faces):
            keep_rolls.append(roll_index[outcome])
            keep_probs.append(prob)
        keep_ptr.append(len(keep_rolls))

    roll_ptr = [0]
    roll_keeps: list[int] = []
    for config in rolls:
        roll_keeps.extend(keep_index[k] for k in canonical_selections(config, faces))
        roll_ptr.append(len(roll_keeps))

    return DiceTables(
        n_dice=n_dice,
        faces=faces,
        rolls=rolls,
        roll_index=roll_index,
        roll_probs=roll_probs,
        roll_counts=roll_counts,
        keeps=tuple(keeps),
        keep_index=keep_index,
        keep_ptr=np.array(keep_ptr, dtype=np.int64),
        keep_rolls=np.array(keep_rolls, dtype=np.int64),
        keep_probs=np.array(keep_probs, dtype=np.float64),
        roll_ptr=np.array(roll_ptr, dtype=np.int64),
        roll_keeps=np.array(roll_keeps, dtype=np.int64),
        full_keep=np.array([keep_index[c] for c in rolls], dtype=np.int64),
    )


__all__ = [
    "validate_dice",
    "face_counts",
    "enumerate_exact",
    "enumerate_rolls",
    "reroll_outcomes",
    "canonical_selections",
    "DiceTables",
    "dice_tables",
]
