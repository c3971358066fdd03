# src/optimal_yahtzee/utils/writer.py
"""
Atomic file writing helpers. Exposes :func:`atomic_path` for safe file
replacement and :func:`write_table_atomic` for persisting a single Parquet
table that readers never observe half-written.
"""
from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Iterator

import pyarrow as pa
import pyarrow.parquet as pq


@contextmanager
def atomic_path(final_path: str | Path) -> Iterator[str]:
    """Write to a temp file in the same directory, then atomic replace."""
    dir_ = os.path.dirname(os.path.abspath(final_path)) or "."
    os.makedirs(dir_, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix="._tmp_", dir=dir_)
    os.close(fd)
    try:
        yield tmp
        os.replace(tmp, final_path)  # atomic on same filesystem
    finally:
        with suppress(FileNotFoundError):
            os.remove(tmp)


def write_table_atomic(
    table: pa.Table, path: str | Path, *, compression: str | None = "zstd"
) -> None:
    """Write *table* to *path* as Parquet, replacing any previous file whole."""
    codec = "none" if compression is None else compression
    with atomic_path(path) as tmp:
        pq.write_table(table, tmp, compression=codec)


__all__ = ["atomic_path", "write_table_atomic"]
