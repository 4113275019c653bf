"""floorsched - production scheduling and completion forecasting."""

from .backlog import Backlog, ShadowArena
from .parser import load_backlog
from .scheduler import HypotheticalProject, SchedulingConfig, SchedulingEngine

__version__ = "0.1.0"

__all__ = [
    "Backlog",
    "HypotheticalProject",
    "SchedulingConfig",
    "SchedulingEngine",
    "ShadowArena",
    "load_backlog",
]
