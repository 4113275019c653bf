"""Pytest configuration and fixtures for floorsched tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime

import pytest

from floorsched import context
from floorsched.backlog import Backlog
from floorsched.logger import reset_logger
from floorsched.models import (
    Phase,
    Project,
    StandardTask,
    Task,
    Workstation,
)

# 2024-01-08 is a Monday
MONDAY = date(2024, 1, 8)


@pytest.fixture(autouse=True)
def clean_logger() -> Iterator[None]:
    """Reset the floorsched logger after each test for isolation."""
    yield
    reset_logger()


@pytest.fixture(autouse=True)
def clean_context() -> Iterator[None]:
    """Clear CLI-level config and store paths after each test."""
    yield
    context.set_config_path(None)
    context.set_store_path(None)


@pytest.fixture
def monday_morning() -> datetime:
    """Monday 2024-01-08 at 08:00, the start of the default working window."""
    return datetime(2024, 1, 8, 8, 0)


@pytest.fixture
def single_station_backlog() -> Backlog:
    """One project, one production phase, two tasks sharing a single workstation.

    Standard tasks have coefficients 2 and 3; at complexity 50 the tasks last
    100 and 150 minutes.
    """
    standard_tasks = (
        StandardTask(id="st-a", task_number="10", name="Cutting", time_coefficient=2),
        StandardTask(id="st-b", task_number="20", name="Edging", time_coefficient=3),
    )
    workstation = Workstation(id="ws-1", name="Panel saw", standard_task_ids=("st-a", "st-b"))
    project = Project(
        id="p1",
        name="Kitchen Smith",
        client="Smith",
        start_date=MONDAY,
        due_date=date(2024, 2, 1),
    )
    phase = Phase(id="p1-prod", project_id="p1", name="Production", order=1)
    tasks = (
        Task(
            id="p1-prod-st-a",
            phase_id="p1-prod",
            title="Cutting",
            duration=100,
            standard_task_id="st-a",
            workstation_ids=("ws-1",),
        ),
        Task(
            id="p1-prod-st-b",
            phase_id="p1-prod",
            title="Edging",
            duration=150,
            standard_task_id="st-b",
            workstation_ids=("ws-1",),
        ),
    )
    return Backlog(
        projects=(project,),
        phases=(phase,),
        tasks=tasks,
        standard_tasks=standard_tasks,
        workstations=(workstation,),
    )


@pytest.fixture
def contention_backlog() -> Backlog:
    """A real project holding one workstation for three working days.

    The catalog has a single standard task (coefficient 9) that only ws-1 can
    run, so any inserted project competes with the real one.
    """
    standard_task = StandardTask(id="st-cut", task_number="10", name="Cutting", time_coefficient=9)
    workstation = Workstation(id="ws-1", name="Panel saw", standard_task_ids=("st-cut",))
    project = Project(
        id="p1",
        name="Wardrobe Jones",
        client="Jones",
        start_date=MONDAY,
        due_date=date(2024, 1, 17),
    )
    phase = Phase(id="p1-prod", project_id="p1", name="Production", order=1)
    task = Task(
        id="p1-cut",
        phase_id="p1-prod",
        title="Cutting",
        duration=1620,  # Three full working days
        standard_task_id="st-cut",
        workstation_ids=("ws-1",),
    )
    return Backlog(
        projects=(project,),
        phases=(phase,),
        tasks=(task,),
        standard_tasks=(standard_task,),
        workstations=(workstation,),
    )
