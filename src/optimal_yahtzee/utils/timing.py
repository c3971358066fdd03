"""Timing helpers."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator


class Elapsed:
    """Seconds spent inside a :func:`time_block`, filled in on exit."""

    __slots__ = ("start", "seconds")

    def __init__(self, start: float) -> None:
        self.start = start
        self.seconds = 0.0


@contextmanager
def time_block(description: str, log: Callable[[str], None] | None = None) -> Iterator[Elapsed]:
    """Context manager that measures execution time.

    Parameters
    ----------
    description:
        Label for the timed block which will be included in the log message.
    log:
        Optional callable to receive a formatted message. Nothing is emitted
        when ``None``; read ``seconds`` from the yielded object instead.
    """

    elapsed = Elapsed(time.perf_counter())
    try:
        yield elapsed
    finally:
        elapsed.seconds = time.perf_counter() - elapsed.start
    if log is not None:
        log(f"{description}: {elapsed.seconds:.3f} s")


__all__ = ["Elapsed", "time_block"]
