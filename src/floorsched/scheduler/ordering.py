"""Deterministic orderings for projects and tasks.

The tie-break among tasks of one phase is a plain key function so callers can
inject their own; the built-in keys cover the orders seen in practice.
"""

from collections.abc import Callable, Collection
from datetime import date

from floorsched.models import Project

from .config import ProjectOrder, SchedulingConfig, TaskOrder
from .core import SchedulableTask

TaskSortKey = Callable[[SchedulableTask], tuple[object, ...]]


def _by_day_counter(task: SchedulableTask) -> tuple[object, ...]:
    return (-task.day_counter, task.id)


def task_number_key(task_number: str) -> tuple[int, int, str]:
    """Natural sort key for standard task numbers ("9" before "10")."""
    stripped = task_number.strip()
    if stripped.isdigit():
        return (0, int(stripped), stripped)
    return (1, 0, stripped)


def _by_task_number(task: SchedulableTask) -> tuple[object, ...]:
    return (task_number_key(task.task_number), task.id)


def _by_creation(task: SchedulableTask) -> tuple[object, ...]:
    return (task.created_index, task.id)


_TASK_KEYS: dict[TaskOrder, TaskSortKey] = {
    TaskOrder.DAY_COUNTER: _by_day_counter,
    TaskOrder.TASK_NUMBER: _by_task_number,
    TaskOrder.CREATION: _by_creation,
}


def task_sort_key(order: TaskOrder) -> TaskSortKey:
    """Key function ordering tasks within a phase (lower sorts first)."""
    try:
        return _TASK_KEYS[order]
    except KeyError:
        msg = f"Unknown task order: {order}"
        raise ValueError(msg) from None


def order_projects(projects: list[Project], config: SchedulingConfig) -> list[Project]:
    """Sort projects into the order in which they claim capacity."""
    if config.project_order == ProjectOrder.CREATION:
        return sorted(projects, key=lambda p: (p.created_index, p.id))
    if config.project_order == ProjectOrder.DUE_DATE:
        return sorted(projects, key=lambda p: (p.due_date, p.created_index, p.id))
    if config.project_order == ProjectOrder.PRIORITY:
        # Projects with an explicit priority go first, highest first
        return sorted(
            projects,
            key=lambda p: (
                0 if p.priority is not None else 1,
                -(p.priority or 0),
                p.created_index,
                p.id,
            ),
        )
    msg = f"Unknown project order: {config.project_order}"
    raise ValueError(msg)


def select_projects(
    projects: list[Project],
    config: SchedulingConfig,
    as_of: date,
    force_include: Collection[str] = (),
) -> list[Project]:
    """Active projects in scheduling order, honouring the configured filters.

    Args:
        projects: Every project of the backlog
        config: Engine configuration
        as_of: Reference date for the past-due filter
        force_include: Project ids admitted regardless of the filters, on top of
            ``project_limit``
    """
    forced = [p for p in projects if p.id in force_include]
    selected = [p for p in projects if p.is_active and p.id not in force_include]
    if config.exclude_past_due:
        selected = [p for p in selected if p.due_date >= as_of]
    selected = order_projects(selected, config)
    if config.project_limit is not None:
        selected = selected[: config.project_limit]
    if forced:
        selected = order_projects(selected + forced, config)
    return selected
