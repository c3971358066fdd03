# src/optimal_yahtzee/cli/main.py
"""
Command line interface for the :mod:`optimal_yahtzee` package.

Subcommands: ``precompute`` fills and saves the value table, ``expected``
prints the game-start expectation and ``advise`` recommends a move for one
position.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from optimal_yahtzee.config import AppConfig, apply_dot_overrides, load_app_config
from optimal_yahtzee.errors import InputError, InvariantViolation, YahtzeeError
from optimal_yahtzee.rules import MAX_REROLLS, UPPER_BONUS_THRESHOLD
from optimal_yahtzee.scorecard import ScorecardState
from optimal_yahtzee.scoring import Category
from optimal_yahtzee.solver import Solver
from optimal_yahtzee.utils.logging import configure_logging

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 2

# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _parse_dice(text: str) -> tuple[int, ...]:
    """Accept ``13346``, ``1,3,3,4,6`` or ``1 3 3 4 6``."""
    cleaned = text.replace(",", " ").split()
    if len(cleaned) == 1:
        cleaned = list(cleaned[0])
    try:
        return tuple(int(c) for c in cleaned)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a dice string: {text!r}") from exc


def _parse_categories(text: str) -> list[Category]:
    return [Category.parse(part) for part in text.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI parser."""
    parser = argparse.ArgumentParser(prog="optimal-yahtzee")
    parser.add_argument("--config", type=Path, help="Path to YAML configuration")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override configuration values, e.g. solver.n_jobs=4",
    )
    parser.add_argument("--log-level", default=None, help="Root logging level")
    parser.add_argument("--cache", type=Path, help="Value table path (overrides cache.path)")

    sub = parser.add_subparsers(dest="command", required=True)

    pre = sub.add_parser("precompute", help="Fill the value table and save it")
    pre.add_argument("--max-open", type=int, default=None, help="Highest layer to solve")
    pre.add_argument("--jobs", type=int, default=None, help="Worker threads")

    sub.add_parser("expected", help="Print the expected score of optimal play")

    adv = sub.add_parser("advise", help="Recommend a move")
    adv.add_argument("--dice", type=_parse_dice, required=True, help="Five dice, e.g. 13346")
    adv.add_argument(
        "--rerolls", type=int, default=MAX_REROLLS, help="Rerolls left (default: 2)"
    )
    adv.add_argument(
        "--filled",
        default="",
        help="Comma-separated filled boxes, e.g. ones,3k,chance",
    )
    adv.add_argument("--upper", type=int, default=0, help="Upper-section total so far")
    adv.add_argument("--yahtzees", type=int, default=0, help="50-point Yahtzees scored so far")
    adv.add_argument("--top", type=int, default=3, help="Alternatives to list (default: 3)")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_precompute(solver: Solver, args: argparse.Namespace) -> None:
    if args.jobs is not None:
        solver.solver_cfg.n_jobs = args.jobs
    reports = solver.precompute(args.max_open)
    computed = sum(r.computed for r in reports)
    print(f"solved {computed} states in {sum(r.seconds for r in reports):.1f} s")
    if reports and reports[-1].open_count == len(Category):
        print(f"expected score: {solver.expected_score():.4f}")


def _cmd_advise(solver: Solver, args: argparse.Namespace) -> None:
    filled = _parse_categories(args.filled)
    try:
        state = ScorecardState.from_categories(
            filled, upper=min(args.upper, UPPER_BONUS_THRESHOLD), yahtzees=args.yahtzees
        )
    except InvariantViolation as exc:
        raise InputError(f"impossible scorecard: {exc}") from exc
    engine = solver.engine
    action, value = engine.best_action(state, args.dice, args.rerolls)
    print(f"{state}")
    print(f"dice {args.dice}, {args.rerolls} reroll(s) left")
    print(f"best: {action}  (expected additional score {value:.4f})")
    if args.top > 0:
        ranked = [(str(a), v) for a, v in engine.scoring_candidates(state, args.dice)]
        if args.rerolls:
            ranked += [(str(a), v) for a, v in engine.reroll_candidates(state, args.dice, args.rerolls)]
        ranked.sort(key=lambda item: -item[1])
        for label, v in ranked[: args.top]:
            print(f"  {v:10.4f}  {label}")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``optimal-yahtzee`` CLI dispatcher."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        overlays: list[Path] = [args.config] if args.config is not None else []
        cfg = load_app_config(*overlays) if overlays else AppConfig()
        cfg = apply_dot_overrides(cfg, list(args.overrides or []))
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        print(f"error: invalid configuration: {exc}")
        return EXIT_ERROR
    if args.cache is not None:
        cfg.cache.path = args.cache
    if args.log_level is not None:
        cfg.log_level = args.log_level

    configure_logging(level=cfg.log_level)
    LOGGER.info(
        "CLI arguments parsed",
        extra={
            "stage": "cli",
            "command": args.command,
            "config_path": str(args.config) if args.config is not None else None,
            "overrides": list(args.overrides or []),
            "cache_path": str(cfg.cache.path) if cfg.cache.path is not None else None,
        },
    )

    try:
        solver = Solver.from_config(cfg)
        if args.command == "precompute":
            _cmd_precompute(solver, args)
        elif args.command == "expected":
            print(f"{solver.expected_score():.4f}")
            solver.save()
        elif args.command == "advise":
            _cmd_advise(solver, args)
        else:  # pragma: no cover - argparse enforces valid choices
            parser.error(f"Unknown command {args.command}")
    except YahtzeeError as exc:
        LOGGER.error("Command failed", extra={"stage": "cli", "command": args.command})
        print(f"error: {exc}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted", extra={"stage": "cli", "command": args.command})
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
