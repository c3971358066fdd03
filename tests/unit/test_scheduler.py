from __future__ import annotations

import logging

import pytest

from optimal_yahtzee.cache import MemoCache
from optimal_yahtzee.engine import ExpectationEngine
from optimal_yahtzee.scheduler import LayerReport, LayerScheduler
from optimal_yahtzee.scorecard import iter_layer, upper_bonus


@pytest.fixture(scope="module")
def serial_cache() -> MemoCache:
    cache = MemoCache()
    LayerScheduler(ExpectationEngine(cache), n_jobs=1).run(max_open=2)
    return cache


def test_layer_zero_is_upper_bonus():
    engine = ExpectationEngine(MemoCache())
    report = LayerScheduler(engine, n_jobs=1).run_layer(0)
    assert report.computed == report.states > 0
    for state in iter_layer(0):
        assert engine.cache.get(state.code) == float(upper_bonus(state))


def test_parallel_matches_serial(serial_cache):
    cache = MemoCache()
    LayerScheduler(ExpectationEngine(cache), n_jobs=3, chunk_size=64).run(max_open=2)
    assert cache.snapshot() == serial_cache.snapshot()


def test_scheduler_matches_lazy_recursion(serial_cache):
    lazy = ExpectationEngine(MemoCache())
    for state in list(iter_layer(2))[::97]:
        assert lazy.value_at_turn_start(state) == pytest.approx(
            serial_cache.get(state.code), abs=1e-9
        )


def test_reports_and_checkpoints():
    cache = MemoCache()
    seen: list[LayerReport] = []
    scheduler = LayerScheduler(ExpectationEngine(cache), n_jobs=2, chunk_size=100)
    reports = scheduler.run(max_open=1, on_layer_done=seen.append)
    assert reports == seen
    assert [r.open_count for r in reports] == [0, 1]
    assert all(r.computed == r.states for r in reports)
    assert len(cache) == sum(r.states for r in reports)


def test_cached_states_are_skipped(serial_cache):
    engine = ExpectationEngine(MemoCache.from_mapping(serial_cache.snapshot()))
    reports = LayerScheduler(engine, n_jobs=1).run(max_open=2)
    assert [r.computed for r in reports] == [0, 0, 0]


def test_layer_logging(caplog):
    caplog.set_level(logging.INFO, logger="optimal_yahtzee.scheduler")
    LayerScheduler(ExpectationEngine(MemoCache()), n_jobs=1).run(max_open=0)
    records = [r for r in caplog.records if r.getMessage() == "Layer complete"]
    assert records and records[0].stage == "precompute"
    assert records[0].open == 0


@pytest.mark.parametrize(
    "kwargs", [{"n_jobs": 0}, {"chunk_size": 0}],
)
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        LayerScheduler(ExpectationEngine(MemoCache()), **kwargs)


def test_invalid_max_open():
    with pytest.raises(ValueError):
        LayerScheduler(ExpectationEngine(MemoCache()), n_jobs=1).run(max_open=14)
