# src/optimal_yahtzee/scheduler.py
"""Layer-by-layer precomputation of start-of-turn values.

Layer ``k`` holds every reachable canonical scorecard with ``k`` open boxes.
Each state in layer ``k`` depends only on states in layer ``k - 1``, so the
states of one layer are independent of each other and can be evaluated by a
pool of worker threads. The scheduler waits for the whole layer before it
starts the next one. Interruption is only observed between layers; the
checkpoint callback sees a cache that holds every earlier layer in full.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from itertools import islice
from typing import Callable, Iterable, Iterator, Sequence

from tqdm import tqdm

from optimal_yahtzee.engine import ExpectationEngine
from optimal_yahtzee.rules import N_CATEGORIES
from optimal_yahtzee.scorecard import ScorecardState, iter_layer
from optimal_yahtzee.utils.parallel import thread_map
from optimal_yahtzee.utils.timing import time_block

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerReport:
    """Outcome of one layer: how many states exist and how many were solved."""

    open_count: int
    states: int
    computed: int
    seconds: float


def _chunks(items: Iterable[ScorecardState], size: int) -> Iterator[list[ScorecardState]]:
    it = iter(items)
    while chunk := list(islice(it, size)):
        yield chunk


class LayerScheduler:
    """Drive an :class:`ExpectationEngine` over the state space bottom-up.

    Parameters
    ----------
    engine:
        Engine whose cache receives every value.
    n_jobs:
        Worker threads; ``None`` uses ``os.cpu_count()``, ``1`` runs inline.
    chunk_size:
        States handed to a worker per task.
    progress:
        Show a tqdm bar per layer.
    """

    def __init__(
        self,
        engine: ExpectationEngine,
        *,
        n_jobs: int | None = None,
        chunk_size: int = 256,
        progress: bool = False,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.engine = engine
        self.n_jobs = n_jobs if n_jobs is not None else (os.cpu_count() or 1)
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be positive, got {self.n_jobs}")
        self.chunk_size = chunk_size
        self.progress = progress

    def _solve_chunk(self, chunk: Sequence[ScorecardState]) -> int:
        for state in chunk:
            self.engine.value_at_turn_start(state)
        return len(chunk)

    def run_layer(self, open_count: int) -> LayerReport:
        """Evaluate every state with *open_count* open boxes not yet cached."""
        cache = self.engine.cache
        states = list(iter_layer(open_count))
        pending = [s for s in states if s.code not in cache]
        with time_block(f"layer {open_count}") as timer:
            bar = tqdm(
                total=len(pending),
                desc=f"layer {open_count:2d}",
                unit="state",
                disable=not self.progress or not pending,
                leave=False,
            )
            with bar:
                for done in thread_map(
                    self._solve_chunk,
                    _chunks(pending, self.chunk_size),
                    n_jobs=self.n_jobs,
                ):
                    bar.update(done)
        report = LayerReport(
            open_count=open_count,
            states=len(states),
            computed=len(pending),
            seconds=timer.seconds,
        )
        LOGGER.info(
            "Layer complete",
            extra={
                "stage": "precompute",
                "open": open_count,
                "states": report.states,
                "computed": report.computed,
                "seconds": round(report.seconds, 3),
            },
        )
        return report

    def run(
        self,
        max_open: int = N_CATEGORIES,
        on_layer_done: Callable[[LayerReport], None] | None = None,
    ) -> list[LayerReport]:
        """Evaluate layers ``0..max_open`` in order.

        Inputs
        ------
        max_open (int):
            Highest layer to evaluate; 13 covers the game start.
        on_layer_done (callable | None):
            Called after each layer, e.g. to checkpoint the cache to disk.

        Returns
        -------
        list[LayerReport]:
            One report per layer, lowest layer first.
        """
        if not 0 <= max_open <= N_CATEGORIES:
            raise ValueError(f"max_open must be in 0..{N_CATEGORIES}, got {max_open}")
        LOGGER.info(
            "Precompute start",
            extra={"stage": "precompute", "max_open": max_open, "n_jobs": self.n_jobs},
        )
        reports = []
        for k in range(max_open + 1):
            report = self.run_layer(k)
            reports.append(report)
            if on_layer_done is not None:
                on_layer_done(report)
        LOGGER.info(
            "Precompute complete",
            extra={
                "stage": "precompute",
                "computed": sum(r.computed for r in reports),
                "seconds": round(sum(r.seconds for r in reports), 3),
                "entries": len(self.engine.cache),
            },
        )
        return reports


__all__ = ["LayerReport", "LayerScheduler"]
