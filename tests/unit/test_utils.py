from __future__ import annotations

import logging
import threading
from pathlib import Path

import pytest

from optimal_yahtzee.utils.logging import configure_logging
from optimal_yahtzee.utils.parallel import thread_map
from optimal_yahtzee.utils.timing import time_block
from optimal_yahtzee.utils.writer import atomic_path
from optimal_yahtzee.utils.yaml_helpers import expand_dotted_keys


def test_atomic_path_replaces_file(tmp_path: Path):
    target = tmp_path / "out.txt"
    target.write_text("old", encoding="utf-8")
    with atomic_path(target) as tmp:
        Path(tmp).write_text("new", encoding="utf-8")
        assert target.read_text(encoding="utf-8") == "old"
    assert target.read_text(encoding="utf-8") == "new"
    assert not list(tmp_path.glob("._tmp_*"))


def test_atomic_path_cleans_up_on_error(tmp_path: Path):
    target = tmp_path / "out.txt"
    with pytest.raises(RuntimeError):
        with atomic_path(target) as tmp:
            Path(tmp).write_text("partial", encoding="utf-8")
            raise RuntimeError("boom")
    assert not target.exists()
    assert not list(tmp_path.glob("._tmp_*"))


def test_thread_map_serial():
    assert list(thread_map(lambda x: x * 2, range(5), n_jobs=1)) == [0, 2, 4, 6, 8]


def test_thread_map_parallel_uses_threads():
    seen: set[int] = set()

    def work(x):
        seen.add(threading.get_ident())
        return x + 1

    out = sorted(thread_map(work, range(50), n_jobs=4, window=8))
    assert out == list(range(1, 51))
    assert threading.get_ident() not in seen


def test_thread_map_propagates_errors():
    def work(x):
        if x == 3:
            raise KeyError(x)
        return x

    with pytest.raises(KeyError):
        list(thread_map(work, range(10), n_jobs=2))


def test_time_block_reports_seconds():
    messages: list[str] = []
    with time_block("step", log=messages.append) as timer:
        pass
    assert timer.seconds >= 0.0
    assert messages and messages[0].startswith("step: ")


def test_configure_logging_quiets_numba(tmp_path: Path):
    log_file = tmp_path / "logs" / "run.log"
    configure_logging(level="DEBUG", log_file=log_file)
    try:
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("numba").level == logging.WARNING
        logging.getLogger("optimal_yahtzee.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello" in log_file.read_text(encoding="utf-8")
    finally:
        configure_logging(level="WARNING")


def test_configure_logging_unknown_level_means_info():
    configure_logging(level="chatty")
    try:
        assert logging.getLogger().level == logging.INFO
    finally:
        configure_logging(level="WARNING")


def test_expand_dotted_keys():
    assert expand_dotted_keys({"solver.n_jobs": 2, "solver": {"chunk_size": 8}}) == {
        "solver": {"n_jobs": 2, "chunk_size": 8}
    }
