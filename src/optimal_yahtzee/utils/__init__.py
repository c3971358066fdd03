# src/optimal_yahtzee/utils/__init__.py
"""Utility subpackage for optimal-yahtzee.

Small helpers shared by the solver, the cache and the CLI: logging setup,
atomic file replacement, a thread-pool map and a timing context manager.
They keep the solver modules free of side effects like file I/O or thread
management.

The most commonly used helpers are re-exported here for convenience.
"""

from __future__ import annotations

from .logging import configure_logging
from .parallel import thread_map
from .timing import time_block
from .writer import atomic_path, write_table_atomic

__all__ = [
    "configure_logging",
    "thread_map",
    "time_block",
    "atomic_path",
    "write_table_atomic",
]
