"""Process-wide CLI state: config file and schedule store locations."""

from __future__ import annotations

from pathlib import Path

DEFAULT_STORE_PATH = Path("floorsched_schedule.yaml")


class _Context:
    def __init__(self) -> None:
        self.config_path: Path | None = None
        self.store_path: Path | None = None


_context = _Context()


def get_config_path() -> Path | None:
    """Get the config path set with --config, if any."""
    return _context.config_path


def set_config_path(path: Path | None) -> None:
    _context.config_path = path


def get_store_path() -> Path | None:
    """Get the schedule store path set with --store, if any."""
    return _context.store_path


def set_store_path(path: Path | None) -> None:
    _context.store_path = path
