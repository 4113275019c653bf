"""Verbosity-aware logging for floorsched.

The CLI ``-v`` flag picks one of four levels. Level 1 reports what the engine
decided (slot placements, store writes), level 2 adds why (each task
considered, each warning raised) and level 3 traces every candidate
workstation.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # between INFO and WARNING, shown at -v 1
CHECKS_LEVEL = 15  # between DEBUG and INFO, shown at -v 2

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0
VERBOSITY_CHANGES = 1
VERBOSITY_CHECKS = 2
VERBOSITY_DEBUG = 3

_LEVELS = {
    VERBOSITY_SILENT: logging.ERROR,
    VERBOSITY_CHANGES: CHANGES_LEVEL,
    VERBOSITY_CHECKS: CHECKS_LEVEL,
    VERBOSITY_DEBUG: logging.DEBUG,
}


class FloorschedLogger(logging.Logger):
    """Logger with one method per scheduling verbosity level."""

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Placements, persisted writes and other decisions."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Tasks considered and warnings raised on the way to a decision."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> FloorschedLogger:
    """The shared ``floorsched`` logger."""
    logging.setLoggerClass(FloorschedLogger)
    logger = logging.getLogger("floorsched")
    assert isinstance(logger, FloorschedLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Point the floorsched logger at ``stream`` (stderr by default) for a verbosity.

    Unknown verbosity values fall back to silent. Calling this again replaces the
    previous handler.
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS.get(verbosity, logging.ERROR))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Drop handlers and go back to errors only (used between tests)."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)


def checks_enabled() -> bool:
    """Whether checks-level output is shown (verbosity >= 2)."""
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    """Whether per-candidate tracing is shown (verbosity >= 3)."""
    return get_logger().isEnabledFor(logging.DEBUG)
