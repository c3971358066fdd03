from __future__ import annotations

from pathlib import Path

import pytest

from optimal_yahtzee.cli import main as cli
from optimal_yahtzee.solver import Solver

ALL_BUT_CHANCE = "ones,twos,threes,fours,fives,sixes,3k,4k,fh,ss,ls,yahtzee"


def _run(tmp_path: Path, *args: str) -> int:
    return cli.main(
        ["--cache", str(tmp_path / "values.parquet"), "--set", "solver.progress=false", *args]
    )


def test_parse_dice_formats():
    assert cli._parse_dice("13346") == (1, 3, 3, 4, 6)
    assert cli._parse_dice("1,3,3,4,6") == (1, 3, 3, 4, 6)
    assert cli._parse_dice("1 3 3 4 6") == (1, 3, 3, 4, 6)


def test_precompute_writes_cache(tmp_path: Path, capsys):
    assert _run(tmp_path, "precompute", "--max-open", "1", "--jobs", "2") == 0
    assert (tmp_path / "values.parquet").exists()
    assert "solved" in capsys.readouterr().out


def test_advise_prints_best_action(tmp_path: Path, capsys):
    code = _run(tmp_path, "advise", "--dice", "12356", "--rerolls", "2", "--filled", ALL_BUT_CHANCE)
    assert code == 0
    out = capsys.readouterr().out
    assert "best: keep 5 6 and reroll the rest" in out


def test_advise_scoring(tmp_path: Path, capsys):
    code = _run(tmp_path, "advise", "--dice", "66666", "--rerolls", "0", "--filled", ALL_BUT_CHANCE)
    assert code == 0
    assert "best: score as Chance" in capsys.readouterr().out


def test_expected_prints_value(tmp_path: Path, capsys, monkeypatch):
    monkeypatch.setattr(Solver, "expected_score", lambda self: 254.5896)
    assert _run(tmp_path, "expected") == 0
    assert "254.5896" in capsys.readouterr().out


@pytest.mark.parametrize(
    "args",
    [
        ["advise", "--dice", "1234"],
        ["advise", "--dice", "12345", "--rerolls", "3", "--filled", ALL_BUT_CHANCE],
        ["advise", "--dice", "12345", "--filled", "bonus"],
        ["advise", "--dice", "12345", "--upper", "10"],
    ],
)
def test_recoverable_errors_exit_2(tmp_path: Path, capsys, args):
    assert _run(tmp_path, *args) == cli.EXIT_ERROR
    assert "error:" in capsys.readouterr().out


def test_bad_override_exits_2(tmp_path: Path, capsys):
    assert _run(tmp_path, "--set", "solver.n_jobs=0", "expected") == cli.EXIT_ERROR
    assert "invalid configuration" in capsys.readouterr().out


def test_config_file(tmp_path: Path, capsys):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text(f"cache:\n  path: {tmp_path / 'other.parquet'}\nsolver.max_open: 0\n", encoding="utf-8")
    assert cli.main(["--config", str(cfg), "--set", "solver.progress=false", "precompute"]) == 0
    assert (tmp_path / "other.parquet").exists()
