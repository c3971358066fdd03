# src/optimal_yahtzee/utils/logging.py
"""Root logger setup shared by the CLI and long precompute runs."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(process)d] %(levelname)s %(name)s: %(message)s"

# numba logs every compilation pass at DEBUG.
_NOISY_LOGGERS = ("numba",)


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def configure_logging(*, level: str | int = "INFO", log_file: str | Path | None = None) -> None:
    """Send solver logs to stderr and, optionally, to *log_file*.

    Parameters
    ----------
    level:
        Level name ("DEBUG", "INFO", ...) or number; unknown names mean INFO.
    log_file:
        Extra UTF-8 log destination, useful for overnight precomputes. Its
        directory is created if missing.

    Calling this again replaces the previous handlers.
    """
    resolved = _resolve_level(level)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=resolved,
        handlers=handlers,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))


__all__ = ["LOG_FORMAT", "configure_logging"]
