import runpy

import pytest

import optimal_yahtzee.cli.main as cli_main


def test_main_module_calls_cli(monkeypatch):
    called = False

    def fake_main():
        nonlocal called
        called = True
        return 0

    monkeypatch.setattr(cli_main, "main", fake_main)
    with pytest.raises(SystemExit) as excinfo:
        runpy.run_module("optimal_yahtzee", run_name="__main__")

    assert called
    assert excinfo.value.code == 0
