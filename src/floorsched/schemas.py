"""Pydantic schemas for backlog YAML validation."""

from __future__ import annotations

import datetime
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import PRODUCTION_TEAM, ProjectStatus, TaskStatus


def _as_str_list(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, list):
        return [str(item) for item in v]  # type: ignore[misc]
    return [str(v)]


class StandardTaskSchema(BaseModel):
    """Schema for a standard task catalog entry."""

    task_number: str
    name: str
    time_coefficient: float | None = None
    day_counter: int = 0
    hourly_cost: float | None = None
    limits: list[str] = Field(default_factory=list)  # Standard task ids that must finish first
    last_production_step: bool = False

    @field_validator("task_number", mode="before")
    @classmethod
    def coerce_task_number(cls, v: Any) -> str:
        """Task numbers are often written unquoted in YAML."""
        return str(v)

    @field_validator("limits", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _as_str_list(v)


class RouteSchema(BaseModel):
    """Schema for a production route."""

    name: str
    standard_tasks: list[str] = Field(default_factory=list)

    @field_validator("standard_tasks", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _as_str_list(v)


class WorkstationSchema(BaseModel):
    """Schema for a workstation."""

    name: str
    team: str = PRODUCTION_TEAM
    standard_tasks: list[str] = Field(default_factory=list)

    @field_validator("standard_tasks", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _as_str_list(v)


class HolidaySchema(BaseModel):
    """Schema for a team holiday."""

    team: str = PRODUCTION_TEAM
    date: datetime.date


class TaskSchema(BaseModel):
    """Schema for an explicit task of a phase.

    ``duration`` may be omitted when ``standard_task`` is given; it is then
    derived from the standard task's time coefficient and the project complexity.
    """

    title: str | None = None
    duration: int | None = None  # Minutes
    standard_task: str | None = None
    due_date: date | None = None
    status: TaskStatus = TaskStatus.TODO
    workstations: list[str] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace(" ", "_").replace("-", "_")
        return v

    @field_validator("workstations", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _as_str_list(v)

    @model_validator(mode="after")
    def validate_duration_source(self) -> TaskSchema:
        if self.duration is None and self.standard_task is None:
            raise ValueError("task needs either 'duration' or 'standard_task'")
        if self.duration is not None and self.duration < 0:
            raise ValueError(f"duration must not be negative, got {self.duration}")
        return self


class GenerateSchema(BaseModel):
    """Generate a phase's tasks from the standard task catalog."""

    route: str | None = None  # All standard tasks when omitted
    complexity: float | None = None  # Defaults to the project's complexity


class PhaseSchema(BaseModel):
    """Schema for a project phase."""

    name: str
    order: int | None = None  # Defaults to the position in the phases mapping
    production: bool = True
    start_date: date | None = None
    end_date: date | None = None
    generate: GenerateSchema | None = None
    tasks: dict[str, TaskSchema] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_window(self) -> PhaseSchema:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("phase end_date must not be before start_date")
        return self


class ProjectSchema(BaseModel):
    """Schema for a customer project."""

    name: str
    client: str = ""
    start_date: date
    due_date: date
    status: ProjectStatus = ProjectStatus.PLANNED
    priority: int | None = Field(default=None, ge=0, le=100)
    complexity: float = Field(default=50.0, ge=0, le=100)
    phases: dict[str, PhaseSchema] = Field(default_factory=dict)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().replace(" ", "_").replace("-", "_")
        return v


class BacklogSchema(BaseModel):
    """Schema for the entire backlog YAML file."""

    standard_tasks: dict[str, StandardTaskSchema] = Field(default_factory=dict)
    routes: dict[str, RouteSchema] = Field(default_factory=dict)
    workstations: dict[str, WorkstationSchema] = Field(default_factory=dict)
    holidays: list[HolidaySchema] = Field(default_factory=list)
    projects: dict[str, ProjectSchema] = Field(default_factory=dict)
