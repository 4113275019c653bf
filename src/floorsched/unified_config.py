"""Unified configuration loader.

A single configuration file (floorsched_config.yaml) holds the scheduler
settings and the location of the schedule store.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from . import context
from .scheduler import SchedulingConfig

CONFIG_FILENAME = "floorsched_config.yaml"


class StoreConfig(BaseModel):
    """Where computed schedules are persisted."""

    path: Path | None = None  # Relative paths are resolved against the config file


class UnifiedConfig(BaseModel):
    """Unified configuration for the engine and the CLI."""

    scheduler: SchedulingConfig = SchedulingConfig()
    store: StoreConfig = StoreConfig()


def load_unified_config(config_path: Path | str) -> UnifiedConfig:
    """Load unified configuration from YAML file.

    Args:
        config_path: Path to floorsched_config.yaml file

    Returns:
        UnifiedConfig with scheduler and store settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open() as f:
        data: Any = yaml.safe_load(f)

    if not data:
        raise ValueError("Empty configuration file")
    if not isinstance(data, dict):
        raise ValueError("Config must contain a dictionary at the root level")

    scheduler_config = SchedulingConfig()
    if "scheduler" in data:
        scheduler_config = SchedulingConfig.model_validate(data["scheduler"] or {})

    store_config = StoreConfig()
    if "store" in data:
        store_config = StoreConfig.model_validate(data["store"] or {})
        if store_config.path is not None and not store_config.path.is_absolute():
            store_config = StoreConfig(path=config_path.parent / store_config.path)

    return UnifiedConfig(scheduler=scheduler_config, store=store_config)


def discover_config(
    backlog_path: Path | None = None,
    config_path: Path | None = None,
) -> UnifiedConfig | None:
    """Discover unified config from various locations.

    Search order:
    1. Explicit config_path argument
    2. Global context (set via CLI --config)
    3. backlog directory / floorsched_config.yaml
    4. Current directory / floorsched_config.yaml
    """
    # 1. Explicit argument
    if config_path and config_path.exists():
        return load_unified_config(config_path)

    # 2. Global context
    ctx_config = context.get_config_path()
    if ctx_config and ctx_config.exists():
        return load_unified_config(ctx_config)

    # 3. Backlog directory
    if backlog_path is not None:
        dir_config = Path(backlog_path).parent / CONFIG_FILENAME
        if dir_config.exists():
            return load_unified_config(dir_config)

    # 4. Current directory
    cwd_config = Path(CONFIG_FILENAME)
    if cwd_config.exists():
        return load_unified_config(cwd_config)

    return None
