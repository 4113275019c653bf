"""The full scheduling pipeline over one backlog snapshot."""

from collections.abc import Collection
from datetime import datetime

from floorsched.backlog import Backlog
from floorsched.logger import checks_enabled, get_logger
from floorsched.models import Project

from .calendar import CalendarResolver
from .capacity import CapacityScheduler
from .config import SchedulingConfig
from .core import ProjectCompletionInfo, ScheduleSlot, SchedulingResult
from .forecast import CompletionForecaster, workstation_buffers
from .graph import TaskGraphBuilder
from .ordering import TaskSortKey, select_projects

logger = get_logger()


def normalize_as_of(as_of: datetime | None) -> datetime:
    """Reference instant as naive local time truncated to the minute (now when not given).

    Calendars are naive local wall-clock time, so an aware instant is converted to
    local time before its offset is dropped.
    """
    value = as_of or datetime.now()  # noqa: DTZ005 - the shop floor runs on local time
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


class SchedulingPipeline:
    """Runs project selection, graph building, capacity scheduling and forecasting.

    The pipeline is pure: it reads a backlog snapshot and returns a result.
    Persisting the result is up to the caller.
    """

    def __init__(
        self, config: SchedulingConfig | None = None, task_key: TaskSortKey | None = None
    ) -> None:
        self.config = config or SchedulingConfig()
        self.task_key = task_key
        self.builder = TaskGraphBuilder(self.config)

    def calendar_for(self, backlog: Backlog) -> CalendarResolver:
        return CalendarResolver(self.config, backlog.holidays)

    def select(
        self, backlog: Backlog, as_of: datetime, force_include: Collection[str] = ()
    ) -> list[Project]:
        return select_projects(list(backlog.projects), self.config, as_of.date(), force_include)

    def run(
        self,
        backlog: Backlog,
        as_of: datetime | None = None,
        force_include: Collection[str] = (),
    ) -> SchedulingResult:
        """Schedule a snapshot.

        Args:
            backlog: Snapshot to schedule
            as_of: Nothing is scheduled before this instant (defaults to now)
            force_include: Project ids scheduled even when the project limit or the
                past-due filter would leave them out

        Returns:
            SchedulingResult with slots, completions, warnings and buffers
        """
        as_of = normalize_as_of(as_of)
        calendar = self.calendar_for(backlog)
        projects = self.select(backlog, as_of, force_include)
        logger.changes(f"Scheduling {len(projects)} project(s) as of {as_of}")

        graph = self.builder.build(backlog, projects)
        scheduler = CapacityScheduler(
            calendar, list(backlog.workstations), self.config, task_key=self.task_key
        )
        capacity = scheduler.schedule(graph, as_of)

        nodes = {node.id: node for node in graph.tasks}
        incomplete = set(graph.incomplete_projects)
        incomplete.update(nodes[task_id].project_id for task_id in capacity.unscheduled_task_ids)

        completions = CompletionForecaster(calendar, self.config).forecast(
            capacity.slots, backlog, projects, as_of, incomplete
        )
        warnings = graph.warnings + capacity.warnings
        if checks_enabled():
            for warning in warnings:
                logger.checks(f"  Warning: {warning}")

        return SchedulingResult(
            slots=capacity.slots,
            completions=completions,
            warnings=warnings,
            buffers=workstation_buffers(capacity.slots, calendar, backlog.workstations),
            as_of=as_of,
        )

    def forecast(
        self, backlog: Backlog, slots: list[ScheduleSlot], as_of: datetime | None = None
    ) -> list[ProjectCompletionInfo]:
        """Forecast completions from an existing (e.g. persisted) schedule."""
        as_of = normalize_as_of(as_of)
        projects = self.select(backlog, as_of)
        project_ids = {p.id for p in projects}
        relevant = [slot for slot in slots if slot.project_id in project_ids]
        return CompletionForecaster(self.calendar_for(backlog), self.config).forecast(
            relevant, backlog, projects, as_of
        )
