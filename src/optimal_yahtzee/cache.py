# src/optimal_yahtzee/cache.py
"""Thread-safe memo table with Parquet persistence.

Keys are the packed integer codes of :class:`~optimal_yahtzee.scorecard.ScorecardState`
(start-of-turn values) and :class:`~optimal_yahtzee.engine.TurnState`
(in-turn values); both fit comfortably in an ``int64``.

On disk the cache is one Parquet file with two columns::

    key: int64   value: float64

and a ``format_version`` entry in the schema metadata. A file whose version
differs from the caller's is rejected as a whole; partial loads never happen.
Concurrent writers to the same file from several processes are not
supported.
"""

from __future__ import annotations

import logging
import math
import threading
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np
import pyarrow as pa
import pyarrow.parquet as pq

from optimal_yahtzee.errors import (
    CacheConsistencyError,
    CacheFormatError,
    CachePersistenceError,
)
from optimal_yahtzee.rules import format_version
from optimal_yahtzee.types import Compression, normalize_compression
from optimal_yahtzee.utils.writer import write_table_atomic

LOGGER = logging.getLogger(__name__)

VERSION_KEY = b"format_version"
CACHE_SCHEMA = pa.schema([("key", pa.int64()), ("value", pa.float64())])

# Two writes of the same key agree when they are this close.
TOLERANCE: float = 1e-9


class MemoCache:
    """Map from state code to expected additional score.

    Parameters
    ----------
    version:
        Format tag written to and required from persisted files. Defaults to
        :func:`optimal_yahtzee.rules.format_version` for the standard rules.
    """

    def __init__(self, version: str | None = None) -> None:
        self.version = version if version is not None else format_version()
        self._values: dict[int, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def get(self, key: int) -> float | None:
        """Return the value stored for *key*, or ``None`` when absent."""
        return self._values.get(key)

    def put(self, key: int, value: float) -> None:
        """Store *value* under *key*.

        Re-storing an equal value (within :data:`TOLERANCE`) is a no-op.

        Raises
        ------
        CacheConsistencyError:
            If *key* already holds a different value.
        """
        value = float(value)
        with self._lock:
            self._store(key, value)

    def put_many(self, items: Iterable[tuple[int, float]]) -> None:
        """Store many pairs under a single lock acquisition."""
        pairs = [(int(k), float(v)) for k, v in items]
        with self._lock:
            for key, value in pairs:
                self._store(key, value)

    def _store(self, key: int, value: float) -> None:
        if math.isnan(value):
            raise CacheConsistencyError(f"refusing to cache NaN for key {key:#x}")
        old = self._values.get(key)
        if old is None:
            self._values[key] = value
        elif abs(old - value) > TOLERANCE:
            raise CacheConsistencyError(
                f"conflicting values for key {key:#x}: {old!r} != {value!r}"
            )

    def snapshot(self) -> dict[int, float]:
        """Consistent copy of every stored pair."""
        with self._lock:
            return dict(self._values)

    # ------------------------------------------------------------------ I/O
    def load_persisted(self, path: str | Path, expected_version: str | None = None) -> int:
        """Merge the pairs stored at *path* into this cache.

        Inputs
        ------
        path (str | Path):
            Parquet file written by :meth:`save_persisted`.
        expected_version (str | None):
            Required ``format_version``; defaults to :attr:`version`.

        Returns
        -------
        int:
            Number of pairs read.

        Raises
        ------
        CacheFormatError:
            The file is unreadable, has the wrong columns, or carries another
            version tag. The cache is left untouched.
        CachePersistenceError:
            The file could not be opened.
        """
        expected = expected_version if expected_version is not None else self.version
        path = Path(path)
        try:
            table = pq.read_table(path)
        except FileNotFoundError as exc:
            raise CachePersistenceError(f"cache file not found: {path}") from exc
        except (pa.ArrowException, OSError) as exc:
            raise CacheFormatError(f"unreadable cache file {path}: {exc}") from exc

        metadata = table.schema.metadata or {}
        found = metadata.get(VERSION_KEY, b"").decode("utf-8", "replace") or None
        if found != expected:
            raise CacheFormatError(
                f"cache {path} has format {found!r}, expected {expected!r}",
                found=found,
                expected=expected,
            )
        if table.schema.names != CACHE_SCHEMA.names:
            raise CacheFormatError(f"cache {path} has columns {table.schema.names}")
        try:
            keys = table.column("key").to_numpy().astype(np.int64, copy=False)
            values = table.column("value").to_numpy().astype(np.float64, copy=False)
        except (pa.ArrowInvalid, ValueError, TypeError) as exc:
            raise CacheFormatError(f"cache {path} has malformed columns: {exc}") from exc
        if np.isnan(values).any():
            raise CacheFormatError(f"cache {path} contains NaN values")

        self.put_many(zip(keys.tolist(), values.tolist()))
        LOGGER.info(
            "Cache loaded",
            extra={"stage": "cache", "path": str(path), "entries": len(keys)},
        )
        return len(keys)

    def save_persisted(
        self, path: str | Path, *, compression: Compression | str | None = "zstd"
    ) -> int:
        """Write every pair to *path*, replacing the old file atomically.

        Returns the number of pairs written. Raises
        :class:`CachePersistenceError` when the file cannot be written; the
        previous file, if any, is then still intact.
        """
        codec = normalize_compression(compression)
        pairs = self.snapshot()
        keys = np.fromiter(pairs.keys(), dtype=np.int64, count=len(pairs))
        values = np.fromiter(pairs.values(), dtype=np.float64, count=len(pairs))
        order = np.argsort(keys)
        schema = CACHE_SCHEMA.with_metadata({VERSION_KEY: self.version.encode("utf-8")})
        table = pa.Table.from_arrays(
            [pa.array(keys[order]), pa.array(values[order])], schema=schema
        )
        try:
            write_table_atomic(table, path, compression=codec)
        except OSError as exc:
            raise CachePersistenceError(f"could not write cache to {path}: {exc}") from exc
        LOGGER.info(
            "Cache saved",
            extra={"stage": "cache", "path": str(path), "entries": len(pairs), "codec": codec},
        )
        return len(pairs)

    @classmethod
    def from_mapping(cls, values: Mapping[int, float], version: str | None = None) -> "MemoCache":
        cache = cls(version)
        cache.put_many(values.items())
        return cache


__all__ = ["MemoCache", "TOLERANCE", "CACHE_SCHEMA"]
