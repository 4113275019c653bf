"""Completion forecasting from a computed schedule."""

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from floorsched.backlog import Backlog
from floorsched.logger import get_logger
from floorsched.models import Project, Workstation

from .calendar import CalendarResolver
from .config import SchedulingConfig
from .core import CompletionStatus, ProjectCompletionInfo, ScheduleSlot

logger = get_logger()


class CompletionForecaster:
    """Derives each project's production end date and health from its slots."""

    def __init__(self, calendar: CalendarResolver, config: SchedulingConfig | None = None) -> None:
        self.calendar = calendar
        self.config = config or SchedulingConfig()

    def forecast(
        self,
        slots: list[ScheduleSlot],
        backlog: Backlog,
        projects: list[Project],
        as_of: datetime,
        incomplete: Iterable[str] = (),
    ) -> list[ProjectCompletionInfo]:
        """Forecast completion for each project, in the given order.

        Args:
            slots: Schedule to read end times from
            backlog: Snapshot the schedule was computed from
            projects: Projects to report on, in scheduling order
            as_of: Reference instant for projects with nothing scheduled
            incomplete: Ids of projects known to have unscheduled tasks

        Returns:
            One ProjectCompletionInfo per project
        """
        incomplete_ids = set(incomplete)
        slots_by_project: dict[str, list[ScheduleSlot]] = {}
        for slot in slots:
            slots_by_project.setdefault(slot.project_id, []).append(slot)

        completions = []
        for project in projects:
            info = self._forecast_project(
                project,
                slots_by_project.get(project.id, []),
                backlog,
                as_of,
                project.id in incomplete_ids,
            )
            logger.checks(
                f"  {project.name}: {info.status.value}, "
                f"{info.days_remaining} working day(s) remaining"
            )
            completions.append(info)
        return completions

    def milestone_task_ids(self, backlog: Backlog, project: Project) -> set[str]:
        """Tasks whose completion marks the end of the project's production.

        The tasks of the last-production-step standard task when the project
        has any, otherwise the tasks of its last production phase.
        """
        production_phases = [p for p in backlog.phases_for(project.id) if p.production]
        last_step = backlog.last_production_step()
        if last_step is not None:
            flagged = {
                task.id
                for phase in production_phases
                for task in backlog.tasks_for(phase.id)
                if task.standard_task_id == last_step.id
            }
            if flagged:
                return flagged

        if not production_phases:
            return set()
        return {task.id for task in backlog.tasks_for(production_phases[-1].id)}

    def _forecast_project(
        self,
        project: Project,
        project_slots: list[ScheduleSlot],
        backlog: Backlog,
        as_of: datetime,
        incomplete: bool,
    ) -> ProjectCompletionInfo:
        team = self.config.production_team

        if not project_slots:
            return ProjectCompletionInfo(
                project_id=project.id,
                project_name=project.name,
                client=project.client,
                due_date=project.due_date,
                last_production_step_end=None,
                days_remaining=self.calendar.working_days_between(
                    team, as_of.date(), project.due_date
                ),
                status=CompletionStatus.PENDING,
                incomplete=incomplete,
            )

        milestone_ids = self.milestone_task_ids(backlog, project)
        milestone_slots = [s for s in project_slots if s.task_id in milestone_ids]
        if not milestone_slots:
            logger.checks(f"  {project.name}: no milestone task scheduled, using last slot")
            milestone_slots = project_slots
            incomplete = True

        end = max(slot.end for slot in milestone_slots)
        days_remaining = self.days_remaining(end, project.due_date)
        return ProjectCompletionInfo(
            project_id=project.id,
            project_name=project.name,
            client=project.client,
            due_date=project.due_date,
            last_production_step_end=end,
            days_remaining=days_remaining,
            status=self.status_for(end, project.due_date, days_remaining),
            incomplete=incomplete,
        )

    def days_remaining(self, end: datetime, due_date: date) -> int:
        """Working days strictly after the end date and before the due date."""
        return self.calendar.working_days_between(
            self.config.production_team, end.date() + timedelta(days=1), due_date
        )

    def status_for(self, end: datetime, due_date: date, days_remaining: int) -> CompletionStatus:
        if end.date() >= due_date:
            return CompletionStatus.OVERDUE
        if days_remaining < self.config.at_risk_threshold_days:
            return CompletionStatus.AT_RISK
        return CompletionStatus.ON_TRACK


def workstation_buffers(
    slots: list[ScheduleSlot],
    calendar: CalendarResolver,
    workstations: Iterable[Workstation],
) -> dict[str, int]:
    """Idle workable minutes between consecutive slots, per workstation.

    Time before the first slot and after the last one is not counted.
    """
    by_workstation: dict[str, list[ScheduleSlot]] = {}
    for slot in slots:
        by_workstation.setdefault(slot.workstation_id, []).append(slot)

    buffers: dict[str, int] = {}
    for workstation in workstations:
        placed = sorted(by_workstation.get(workstation.id, []), key=lambda s: (s.start, s.task_id))
        idle = 0
        for previous, current in zip(placed, placed[1:]):
            if current.start > previous.end:
                idle += calendar.working_minutes_between(
                    workstation.team, previous.end, current.start
                )
        buffers[workstation.id] = idle
    return buffers
