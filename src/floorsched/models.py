"""Domain records for the production backlog.

These are plain immutable values. They are produced by the parser (or by the
surrounding application) and never mutated by the engine: every pipeline
stage receives a backlog snapshot and derives new values from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

PRODUCTION_TEAM = "production"
INSTALLATION_TEAM = "installation"


class ProjectStatus(str, Enum):
    """Lifecycle state of a project."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskStatus(str, Enum):
    """Work state of a task as maintained on the shop floor."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    HOLD = "HOLD"


ACTIVE_PROJECT_STATUSES = frozenset({ProjectStatus.PLANNED, ProjectStatus.IN_PROGRESS})


@dataclass(frozen=True)
class Project:
    """A customer project moving through production."""

    id: str
    name: str
    client: str
    start_date: date
    due_date: date  # Installation date
    status: ProjectStatus = ProjectStatus.PLANNED
    priority: int | None = None  # 0-100, higher is more urgent
    complexity: float = 50.0  # 0-100, scales generated task durations
    created_index: int = 0  # Insertion order within the backlog

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_PROJECT_STATUSES


@dataclass(frozen=True)
class Phase:
    """An ordered stage of a project.

    Only production phases are scheduled. Later phases such as installation
    are carried for completeness but ignored by the capacity scheduler.
    """

    id: str
    project_id: str
    name: str
    order: int
    start_date: date | None = None
    end_date: date | None = None
    production: bool = True


@dataclass(frozen=True)
class StandardTask:
    """A catalog template for a kind of work."""

    id: str
    task_number: str
    name: str
    time_coefficient: float | None = None
    day_counter: int = 0
    hourly_cost: float | None = None
    # Standard tasks that must be finished (within the same project) before this one starts
    limit_task_ids: tuple[str, ...] = ()
    last_production_step: bool = False


@dataclass(frozen=True)
class ProductionRoute:
    """A named subset of standard tasks applicable to a product line."""

    id: str
    name: str
    standard_task_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Task:
    """A concrete unit of work belonging to one phase."""

    id: str
    phase_id: str
    title: str
    duration: int  # Minutes, fixed at creation
    standard_task_id: str | None = None
    due_date: date | None = None
    status: TaskStatus = TaskStatus.TODO
    workstation_ids: tuple[str, ...] = ()
    created_index: int = 0

    @property
    def is_pending(self) -> bool:
        return self.status != TaskStatus.COMPLETED


@dataclass(frozen=True)
class Workstation:
    """A production resource that runs one task at a time."""

    id: str
    name: str
    team: str = PRODUCTION_TEAM
    standard_task_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class HolidayEntry:
    """A non-working day for an entire team."""

    team: str
    date: date
