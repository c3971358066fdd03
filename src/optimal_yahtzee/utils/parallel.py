# src/optimal_yahtzee/utils/parallel.py
"""Parallel execution helpers used by the layer scheduler.

Maps work over a ThreadPoolExecutor. The solver's heavy loops are numba
kernels compiled with ``nogil=True``, so threads overlap there while sharing
one in-memory cache. Keep solver-specific logic outside utils.
"""

from __future__ import annotations

import contextlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def thread_map(
    fn: Callable[[T], R],
    items: Iterable[T],
    *,
    n_jobs: int | None = None,
    window: int = 0,
) -> Iterator[R]:
    """Map ``fn`` across ``items``, yielding results in completion order.

    At most ``window`` tasks are in flight at once (default ``4 * n_jobs``).
    An exception raised by ``fn`` propagates to the caller on the next
    ``next()``; tasks already queued are cancelled when the pool shuts down.
    """
    if n_jobs in (None, 0, 1):
        for it in items:
            yield fn(it)
        return
    if window <= 0:
        window = n_jobs * 4

    with ThreadPoolExecutor(max_workers=n_jobs, thread_name_prefix="yahtzee") as pool:
        it = iter(items)
        futs = []
        for _ in range(window):
            try:
                futs.append(pool.submit(fn, next(it)))
            except StopIteration:
                break
        try:
            while futs:
                done = next(as_completed(futs))
                futs.remove(done)
                yield done.result()
                with contextlib.suppress(StopIteration):
                    futs.append(pool.submit(fn, next(it)))
        finally:
            for fut in futs:
                fut.cancel()


__all__ = ["thread_map"]
