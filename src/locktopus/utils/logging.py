"""Logging helpers with consistent formatting."""

from __future__ import annotations

import logging
import sys
from typing import Union

from rich.logging import RichHandler

from locktopus.utils.env import get_str_env

_LEVEL_ENV = "LOCKTOPUS_LOG_LEVEL"


def resolve_level(level: Union[int, str]) -> int:
    """Map a level name or number to a logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def get_logger(name: str, level: Union[int, str, None] = None, *, rich: bool = True) -> logging.Logger:
    """Configure and return a logger.

    Without an explicit ``level`` the ``LOCKTOPUS_LOG_LEVEL`` environment
    variable is used, falling back to ``INFO``.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    if level is None:
        level = get_str_env(_LEVEL_ENV, default="INFO")
    level = resolve_level(level)
    logger.setLevel(level)

    if rich:
        handler: logging.Handler = RichHandler(
            level=level,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            show_time=True,
            show_path=False,
        )
        # RichHandler renders time and level itself
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(name)s %(levelname)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(handler)
    logger.propagate = False
    return logger
