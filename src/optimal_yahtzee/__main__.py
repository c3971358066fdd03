# src/optimal_yahtzee/__main__.py
"""Command line entry point for the :mod:`optimal_yahtzee` package.

When executed as ``python -m optimal_yahtzee`` this module simply delegates to
:func:`optimal_yahtzee.cli.main.main` which implements the full CLI logic.
"""

from __future__ import annotations

from optimal_yahtzee.cli.main import main as cli_main


def main() -> None:
    """Invoke :func:`optimal_yahtzee.cli.main.main` and exit with its status."""

    raise SystemExit(cli_main())


if __name__ == "__main__":  # pragma: no cover - direct execution path
    main()
