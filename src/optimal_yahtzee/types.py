"""Shared type aliases for the optimal-yahtzee project.

``Int64Array1D`` and ``Float64Array1D`` are conveniences for NumPy arrays that
are expected, by convention, to be one-dimensional.
"""

from __future__ import annotations

from typing import Literal, Tuple, TypeAlias

import numpy as np
import numpy.typing as npt

DiceConfig: TypeAlias = Tuple[int, ...]  # sorted faces, always N_DICE long
KeptDice: TypeAlias = Tuple[int, ...]  # sorted sub-multiset of a DiceConfig
FaceCounts: TypeAlias = Tuple[int, ...]  # counts for faces 1..F
Int64Array1D: TypeAlias = npt.NDArray[np.int64]
Float64Array1D: TypeAlias = npt.NDArray[np.float64]
Compression: TypeAlias = Literal["zstd", "snappy", "gzip", "brotli", "lz4", "none"]

_COMPRESSION_VALUES: set[str] = {"zstd", "snappy", "gzip", "brotli", "lz4", "none"}


def normalize_compression(value: str | Compression | None) -> Compression:
    """Normalize user-provided compression values to a supported literal."""
    if value is None:
        return "none"
    normalized = value.lower()
    if normalized not in _COMPRESSION_VALUES:
        raise ValueError(f"Unsupported cache compression: {value}")
    return normalized  # type: ignore[return-value]


__all__ = [
    "DiceConfig",
    "KeptDice",
    "FaceCounts",
    "Int64Array1D",
    "Float64Array1D",
    "Compression",
    "normalize_compression",
]
