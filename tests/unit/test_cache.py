from __future__ import annotations

import threading

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from optimal_yahtzee.cache import CACHE_SCHEMA, MemoCache
from optimal_yahtzee.errors import (
    CacheConsistencyError,
    CacheFormatError,
    CachePersistenceError,
    InvariantViolation,
)
from optimal_yahtzee.rules import format_version


def test_get_missing_returns_none(cache):
    assert cache.get(42) is None
    assert 42 not in cache
    assert len(cache) == 0


def test_put_is_idempotent(cache):
    cache.put(7, 1.5)
    cache.put(7, 1.5 + 1e-12)
    assert cache.get(7) == 1.5
    assert len(cache) == 1


def test_conflicting_put_is_fatal(cache):
    cache.put(7, 1.5)
    with pytest.raises(CacheConsistencyError):
        cache.put(7, 2.5)
    assert issubclass(CacheConsistencyError, InvariantViolation)
    assert issubclass(CacheConsistencyError, AssertionError)


def test_nan_rejected(cache):
    with pytest.raises(CacheConsistencyError):
        cache.put(1, float("nan"))


def test_concurrent_identical_writes_converge(cache):
    def writer():
        cache.put_many((k, k / 3) for k in range(2000))

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(cache) == 2000
    assert cache.get(1999) == 1999 / 3


def test_default_version_is_rule_fingerprint():
    assert MemoCache().version == format_version()
    assert format_version().startswith("v1-")


@pytest.mark.parametrize("codec", ["zstd", "snappy", "none"])
def test_save_and_load(tmp_path, codec):
    src = MemoCache.from_mapping({1: 0.5, 2**40: 254.5896, 3: 35.0})
    path = tmp_path / "values.parquet"
    assert src.save_persisted(path, compression=codec) == 3

    dst = MemoCache()
    assert dst.load_persisted(path, src.version) == 3
    assert dst.snapshot() == src.snapshot()


def test_saved_file_layout(tmp_path):
    path = tmp_path / "values.parquet"
    MemoCache.from_mapping({5: 1.0, 3: 2.0}).save_persisted(path)
    table = pq.read_table(path)
    assert table.schema.names == ["key", "value"]
    assert table.schema.field("key").type == pa.int64()
    assert table.schema.metadata[b"format_version"] == format_version().encode()
    assert table.column("key").to_pylist() == [3, 5]
    assert not list(tmp_path.glob("._tmp_*"))


def test_version_mismatch_leaves_cache_untouched(tmp_path):
    path = tmp_path / "values.parquet"
    MemoCache.from_mapping({1: 1.0}, version="v0-old").save_persisted(path)

    cache = MemoCache()
    cache.put(9, 9.0)
    with pytest.raises(CacheFormatError) as excinfo:
        cache.load_persisted(path)
    assert excinfo.value.found == "v0-old"
    assert excinfo.value.expected == cache.version
    assert cache.snapshot() == {9: 9.0}


def test_missing_metadata_is_format_error(tmp_path):
    path = tmp_path / "bare.parquet"
    pq.write_table(pa.table({"key": [1], "value": [1.0]}, schema=CACHE_SCHEMA), path)
    with pytest.raises(CacheFormatError):
        MemoCache().load_persisted(path)


def test_corrupt_file_is_format_error(tmp_path):
    path = tmp_path / "garbage.parquet"
    path.write_bytes(b"definitely not parquet")
    cache = MemoCache()
    with pytest.raises(CacheFormatError):
        cache.load_persisted(path)
    assert len(cache) == 0


def test_missing_file_is_persistence_error(tmp_path):
    with pytest.raises(CachePersistenceError):
        MemoCache().load_persisted(tmp_path / "nope.parquet")


def test_save_failure_is_persistence_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    cache = MemoCache.from_mapping({1: 1.0})
    with pytest.raises(CachePersistenceError):
        cache.save_persisted(blocker / "values.parquet")


def test_save_failure_keeps_previous_file(tmp_path, monkeypatch):
    path = tmp_path / "values.parquet"
    MemoCache.from_mapping({1: 1.0}).save_persisted(path)
    before = path.read_bytes()

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(pq, "write_table", boom)
    with pytest.raises(CachePersistenceError):
        MemoCache.from_mapping({1: 1.0, 2: 2.0}).save_persisted(path)
    assert path.read_bytes() == before
    assert not list(tmp_path.glob("._tmp_*"))


def test_unknown_compression_rejected(tmp_path):
    with pytest.raises(ValueError):
        MemoCache().save_persisted(tmp_path / "x.parquet", compression="rar")
