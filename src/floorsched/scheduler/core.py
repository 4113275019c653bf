"""Core dataclasses for the scheduling engine."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from floorsched.models import Project


class CompletionStatus(str, Enum):
    """Health of a project's production forecast."""

    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    OVERDUE = "overdue"
    PENDING = "pending"  # Nothing of the project could be placed


# Higher is worse; used to tell whether a simulated status is a deterioration
STATUS_SEVERITY = {
    CompletionStatus.ON_TRACK: 0,
    CompletionStatus.PENDING: 1,
    CompletionStatus.AT_RISK: 2,
    CompletionStatus.OVERDUE: 3,
}


class WarningCode(str, Enum):
    """Kinds of non-fatal problems reported alongside a schedule."""

    NO_WORKSTATION = "no_workstation"
    UNKNOWN_WORKSTATION = "unknown_workstation"
    MISSING_STANDARD_TASK = "missing_standard_task"
    MISSING_PHASE = "missing_phase"
    PRECEDENCE_CYCLE = "precedence_cycle"
    CALENDAR_EXHAUSTED = "calendar_exhausted"
    UNKNOWN_ROUTE = "unknown_route"


@dataclass(frozen=True)
class ScheduleWarning:
    """A non-fatal problem attached to a scheduling result."""

    code: WarningCode
    message: str
    task_id: str | None = None
    project_id: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ScheduleSlot:
    """A task placed on a workstation.

    ``end`` is a wall-clock instant: the span may cross nights, weekends and
    holidays, which are excluded from the task's worked time.
    """

    task_id: str
    workstation_id: str
    start: datetime
    end: datetime
    project_id: str
    phase_id: str


@dataclass(frozen=True)
class ProjectCompletionInfo:
    """Forecast of when a project's production finishes."""

    project_id: str
    project_name: str
    client: str
    due_date: date
    last_production_step_end: datetime | None
    days_remaining: int  # Working days of slack before the due date
    status: CompletionStatus
    incomplete: bool = False  # Some of the project's tasks could not be scheduled


@dataclass
class SchedulableTask:
    """A pending task with everything the capacity scheduler needs."""

    id: str
    project_id: str
    phase_id: str
    phase_order: int
    duration: int  # Minutes
    candidates: list[str]  # Workstation ids, in preference order
    standard_task_id: str | None = None
    day_counter: int = 0
    task_number: str = ""
    created_index: int = 0


@dataclass
class TaskGraph:
    """Tasks to schedule plus their precedence edges."""

    projects: list[Project]  # In scheduling order
    tasks: list[SchedulableTask]
    predecessors: dict[str, set[str]]
    warnings: list[ScheduleWarning] = field(default_factory=list[ScheduleWarning])
    # Project ids with tasks that will not appear in the schedule
    incomplete_projects: set[str] = field(default_factory=set[str])


@dataclass
class CapacityResult:
    """Result from the capacity scheduler."""

    slots: list[ScheduleSlot]
    warnings: list[ScheduleWarning] = field(default_factory=list[ScheduleWarning])
    unscheduled_task_ids: list[str] = field(default_factory=list[str])


@dataclass
class SchedulingResult:
    """Complete result of a scheduling run."""

    slots: list[ScheduleSlot]
    completions: list[ProjectCompletionInfo]
    warnings: list[ScheduleWarning] = field(default_factory=list[ScheduleWarning])
    # Idle workable minutes between consecutive slots, per workstation
    buffers: dict[str, int] = field(default_factory=dict[str, int])
    as_of: datetime | None = None


@dataclass(frozen=True)
class ProjectImpact:
    """How a hypothetical insertion shifts a real project's forecast."""

    project_id: str
    project_name: str
    client: str
    original_status: CompletionStatus
    new_status: CompletionStatus
    original_days_remaining: int
    new_days_remaining: int

    @property
    def days_difference(self) -> int:
        """Working days of slack lost (positive) or gained (negative)."""
        return self.original_days_remaining - self.new_days_remaining

    @property
    def worsened(self) -> bool:
        return STATUS_SEVERITY[self.new_status] > STATUS_SEVERITY[self.original_status]


@dataclass
class SimulationResult:
    """Outcome of a what-if insertion."""

    new_project_completion: ProjectCompletionInfo | None
    impacted_projects: list[ProjectImpact]
    original_completions: list[ProjectCompletionInfo]
    simulated_completions: list[ProjectCompletionInfo]
    total_schedule_slots: int = 0
    warnings: list[ScheduleWarning] = field(default_factory=list[ScheduleWarning])
