"""Scheduler package - workstation capacity scheduling and completion forecasting.

This package provides:
- A calendar resolver for team working hours, breaks and holidays
- A task graph builder deriving tasks and precedence from the backlog
- A greedy capacity scheduler placing tasks on single-occupancy workstations
- A completion forecaster reporting each project's production health
- A simulation coordinator for what-if insertions of hypothetical projects

Main entry points:
- SchedulingEngine: generate_schedule() and simulate_insertion()
- SchedulingPipeline: The pure pipeline over one backlog snapshot

Configuration:
- SchedulingConfig: Main configuration (working hours, ordering, horizon)
- WorkingHoursConfig: Daily working window of a team
- SimulationConfig: What-if simulation behaviour
"""

# Calendar
from .calendar import CalendarResolver

# Capacity scheduling
from .capacity import CapacityScheduler

# Configuration
from .config import (
    BreakPeriod,
    ProjectOrder,
    SchedulingConfig,
    SimulationConfig,
    TaskOrder,
    WorkingHoursConfig,
)

# Core dataclasses
from .core import (
    STATUS_SEVERITY,
    CapacityResult,
    CompletionStatus,
    ProjectCompletionInfo,
    ProjectImpact,
    SchedulableTask,
    ScheduleSlot,
    ScheduleWarning,
    SchedulingResult,
    SimulationResult,
    TaskGraph,
    WarningCode,
)

# Forecasting
from .forecast import CompletionForecaster, workstation_buffers

# Task graph
from .graph import TaskGraphBuilder

# Ordering
from .ordering import TaskSortKey, order_projects, select_projects, task_sort_key

# Persistence
from .persist import InMemoryScheduleStore, ScheduleStore, YamlScheduleStore

# Pipeline
from .pipeline import SchedulingPipeline, normalize_as_of

# High-level service
from .service import SchedulingEngine

# Simulation
from .simulation import HypotheticalProject, SimulationCoordinator

# Timelines
from .timeline import Reservation, WorkstationTimeline

__all__ = [
    "STATUS_SEVERITY",
    "BreakPeriod",
    "CalendarResolver",
    "CapacityResult",
    "CapacityScheduler",
    "CompletionForecaster",
    "CompletionStatus",
    "HypotheticalProject",
    "InMemoryScheduleStore",
    "ProjectCompletionInfo",
    "ProjectImpact",
    "ProjectOrder",
    "Reservation",
    "SchedulableTask",
    "ScheduleSlot",
    "ScheduleStore",
    "ScheduleWarning",
    "SchedulingConfig",
    "SchedulingEngine",
    "SchedulingPipeline",
    "SchedulingResult",
    "SimulationConfig",
    "SimulationCoordinator",
    "SimulationResult",
    "TaskGraph",
    "TaskGraphBuilder",
    "TaskOrder",
    "TaskSortKey",
    "WorkingHoursConfig",
    "WorkstationTimeline",
    "YamlScheduleStore",
    "normalize_as_of",
    "order_projects",
    "select_projects",
    "task_sort_key",
    "workstation_buffers",
]
