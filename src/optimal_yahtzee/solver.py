# src/optimal_yahtzee/solver.py
"""Convenience facade tying the cache, engine and scheduler together.

Typical use::

    solver = Solver.from_config(load_app_config(Path("yahtzee.yaml")))
    solver.precompute()
    solver.engine.best_action(state, (1, 3, 3, 4, 6), rerolls=2)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from optimal_yahtzee.cache import MemoCache
from optimal_yahtzee.config import AppConfig, CacheConfig, SolverConfig
from optimal_yahtzee.engine import ExpectationEngine
from optimal_yahtzee.errors import CacheFormatError, CachePersistenceError
from optimal_yahtzee.scheduler import LayerReport, LayerScheduler

LOGGER = logging.getLogger(__name__)


@dataclass
class Solver:
    """A ready-to-query engine plus the settings used to fill and persist it."""

    engine: ExpectationEngine
    cache_cfg: CacheConfig
    solver_cfg: SolverConfig

    @classmethod
    def from_config(cls, cfg: AppConfig, *, cache: MemoCache | None = None) -> "Solver":
        """Build a solver, seeding the cache from disk when a compatible file exists.

        An incompatible or unreadable file is reported and ignored; the solver
        then starts from an empty cache and the file is overwritten on the next
        save.
        """
        cache = cache if cache is not None else MemoCache()
        path = cfg.cache.path
        if path is not None and Path(path).exists():
            try:
                cache.load_persisted(path)
            except (CacheFormatError, CachePersistenceError) as exc:
                LOGGER.warning(
                    "Ignoring persisted cache",
                    extra={"stage": "cache", "path": str(path), "error": str(exc)},
                )
        return cls(ExpectationEngine(cache), cfg.cache, cfg.solver)

    @property
    def cache(self) -> MemoCache:
        return self.engine.cache

    def save(self) -> bool:
        """Persist the cache if a path is configured; ``False`` when that failed."""
        path = self.cache_cfg.path
        if path is None:
            return False
        try:
            self.cache.save_persisted(path, compression=self.cache_cfg.compression)
        except CachePersistenceError as exc:
            LOGGER.warning(
                "Cache not saved",
                extra={"stage": "cache", "path": str(path), "error": str(exc)},
            )
            return False
        return True

    def precompute(self, max_open: int | None = None) -> list[LayerReport]:
        """Fill the cache for every layer up to *max_open* and save it."""
        scheduler = LayerScheduler(
            self.engine,
            n_jobs=self.solver_cfg.n_jobs,
            chunk_size=self.solver_cfg.chunk_size,
            progress=self.solver_cfg.progress,
        )
        checkpoint = None
        if self.cache_cfg.path is not None and self.cache_cfg.checkpoint_every_layer:
            checkpoint = self._checkpoint
        top = self.solver_cfg.max_open if max_open is None else max_open
        reports = scheduler.run(top, on_layer_done=checkpoint)
        if checkpoint is None:
            self.save()
        return reports

    def _checkpoint(self, report: LayerReport) -> None:
        if report.computed:
            self.save()

    def expected_score(self) -> float:
        """Expected final score of an optimally played game."""
        return self.engine.expected_score_at_game_start()


def solve(cfg: AppConfig | None = None) -> Solver:
    """Build a solver from *cfg* (defaults if ``None``) and precompute every layer."""
    solver = Solver.from_config(cfg if cfg is not None else AppConfig())
    solver.precompute()
    return solver


__all__ = ["Solver", "solve"]
