from __future__ import annotations

from pathlib import Path

import pytest

from optimal_yahtzee.config import AppConfig, apply_dot_overrides, load_app_config


def test_defaults():
    cfg = AppConfig()
    assert cfg.cache.path == Path("yahtzee_values.parquet")
    assert cfg.cache.compression == "zstd"
    assert cfg.solver.max_open == 13
    assert cfg.solver.n_jobs is None
    assert cfg.log_level == "INFO"


def test_load_overlays_later_wins(tmp_path: Path):
    base = tmp_path / "base.yaml"
    base.write_text(
        "cache:\n  path: cache/base.parquet\n  compression: snappy\nsolver:\n  n_jobs: 2\n",
        encoding="utf-8",
    )
    extra = tmp_path / "extra.yaml"
    extra.write_text("solver.n_jobs: 8\nlog_level: DEBUG\n", encoding="utf-8")

    cfg = load_app_config(base, extra)
    assert cfg.cache.path == Path("cache/base.parquet")
    assert cfg.cache.compression == "snappy"
    assert cfg.solver.n_jobs == 8
    assert cfg.log_level == "DEBUG"


def test_empty_file_gives_defaults(tmp_path: Path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert load_app_config(empty) == AppConfig()


def test_non_mapping_rejected(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(TypeError):
        load_app_config(bad)


def test_unknown_keys_rejected(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("solver:\n  threads: 3\n", encoding="utf-8")
    with pytest.raises(AttributeError):
        load_app_config(bad)
    bad.write_text("sim:\n  seed: 3\n", encoding="utf-8")
    with pytest.raises(AttributeError):
        load_app_config(bad)


def test_invalid_values_rejected(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("cache:\n  compression: rar\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_app_config(bad)


def test_dot_overrides_coerce_types():
    cfg = apply_dot_overrides(
        AppConfig(),
        [
            "solver.n_jobs=4",
            "solver.progress=off",
            "cache.path=/tmp/v.parquet",
            "cache.checkpoint_every_layer=false",
            "log_level=WARNING",
        ],
    )
    assert cfg.solver.n_jobs == 4
    assert cfg.solver.progress is False
    assert cfg.cache.path == Path("/tmp/v.parquet")
    assert cfg.cache.checkpoint_every_layer is False
    assert cfg.log_level == "WARNING"


def test_dot_override_none():
    cfg = apply_dot_overrides(AppConfig(), ["solver.n_jobs=4", "solver.n_jobs=none"])
    assert cfg.solver.n_jobs is None


@pytest.mark.parametrize(
    "pair,exc",
    [
        ("solver.n_jobs", ValueError),
        ("n_jobs=3", ValueError),
        ("solver.threads=3", AttributeError),
        ("engine.n_jobs=3", AttributeError),
        ("solver.n_jobs=0", ValueError),
        ("solver.progress=maybe", ValueError),
    ],
)
def test_bad_overrides(pair, exc):
    with pytest.raises(exc):
        apply_dot_overrides(AppConfig(), [pair])
