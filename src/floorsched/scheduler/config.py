"""Configuration classes for the scheduling engine."""

from datetime import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from floorsched.models import PRODUCTION_TEAM

MONDAY_TO_FRIDAY = [0, 1, 2, 3, 4]
MINUTES_PER_HOUR = 60


def _coerce_clock(value: Any) -> Any:
    """Accept YAML sexagesimal integers for clock times.

    PyYAML reads an unquoted ``17:00`` as the integer 1020 (base 60), which
    pydantic would otherwise interpret as seconds.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return time(value // MINUTES_PER_HOUR, value % MINUTES_PER_HOUR)
    return value


class TaskOrder(str, Enum):
    """Tie-break order among tasks of the same phase."""

    DAY_COUNTER = "day_counter"  # Longest lead time first, ties by task id
    TASK_NUMBER = "task_number"  # Standard task number, ties by task id
    CREATION = "creation"  # Order in which tasks were created


class ProjectOrder(str, Enum):
    """Order in which projects claim workstation capacity."""

    PRIORITY = "priority"  # Explicit priority first (higher first), then creation order
    CREATION = "creation"
    DUE_DATE = "due_date"  # Earliest installation date first


class BreakPeriod(BaseModel):
    """A daily break inside the working window."""

    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_clock(cls, value: Any) -> Any:
        return _coerce_clock(value)

    @model_validator(mode="after")
    def validate_end_after_start(self) -> "BreakPeriod":
        if self.end <= self.start:
            raise ValueError("break end must be after break start")
        return self


class WorkingHoursConfig(BaseModel):
    """Daily working window for a team, constant for a whole engine run."""

    start: time = time(8, 0)
    end: time = time(17, 0)
    weekdays: list[int] = Field(default_factory=lambda: list(MONDAY_TO_FRIDAY))  # 0 = Monday
    breaks: list[BreakPeriod] = Field(default_factory=list[BreakPeriod])

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_clock(cls, value: Any) -> Any:
        return _coerce_clock(value)

    @model_validator(mode="after")
    def validate_window(self) -> "WorkingHoursConfig":
        if self.end <= self.start:
            raise ValueError("working hours end must be after start")
        for day in self.weekdays:
            if not 0 <= day <= 6:  # noqa: PLR2004 - weekday range
                raise ValueError(f"Invalid weekday {day}: must be 0 (Monday) to 6 (Sunday)")
        for period in self.breaks:
            if period.start < self.start or period.end > self.end:
                raise ValueError(
                    f"Break {period.start}-{period.end} lies outside working hours "
                    f"{self.start}-{self.end}"
                )
        return self


class SimulationConfig(BaseModel):
    """Configuration for what-if simulations."""

    # Recompute and persist the real-only schedule after a simulation
    restore_persisted: bool = True
    # Extra attempts for the restore write before it is reported as critical
    restore_retries: int = 1
    # Prefix for ids minted for hypothetical records
    id_prefix: str = "sim"
    # Smallest days-remaining change reported as an impact
    min_impact_days: int = 1


class SchedulingConfig(BaseModel):
    """Configuration for the scheduling engine."""

    working_hours: WorkingHoursConfig = WorkingHoursConfig()
    team_working_hours: dict[str, WorkingHoursConfig] = Field(default_factory=dict)
    production_team: str = PRODUCTION_TEAM

    # Duration used when a standard task has no time coefficient
    default_duration_minutes: int = 60
    # Tasks that cannot find workable time within this many days are unschedulable
    horizon_days: int = 730

    task_order: TaskOrder = TaskOrder.DAY_COUNTER
    project_order: ProjectOrder = ProjectOrder.PRIORITY
    project_limit: int | None = None  # Only schedule the N first projects in order
    exclude_past_due: bool = False  # Skip projects whose due date is before as-of

    # Slack (working days) below which a project is reported at risk
    at_risk_threshold_days: int = 3

    simulation: SimulationConfig = SimulationConfig()

    def hours_for(self, team: str) -> WorkingHoursConfig:
        """Working hours for a team, falling back to the default window."""
        return self.team_working_hours.get(team, self.working_hours)
