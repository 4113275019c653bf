"""Greedy forward capacity scheduler."""

import heapq
from datetime import datetime, timedelta

from floorsched.logger import debug_enabled, get_logger
from floorsched.models import Workstation

from .calendar import CalendarResolver
from .config import SchedulingConfig
from .core import (
    CapacityResult,
    SchedulableTask,
    ScheduleSlot,
    ScheduleWarning,
    TaskGraph,
    WarningCode,
)
from .ordering import TaskSortKey, task_sort_key
from .timeline import WorkstationTimeline

logger = get_logger()


class CapacityScheduler:
    """Places tasks one by one on the earliest feasible workstation interval.

    This scheduler:
    1. Walks tasks in priority order (project order, phase order, then the
       task sort key), only ever taking a task once all its predecessors
       have been handled
    2. Computes the earliest start from as-of, predecessor completions and
       each candidate workstation's free time
    3. Snaps the start to workable time and accumulates the task's duration
       across working windows of the workstation's team
    4. Keeps the candidate with the earliest start (lowest workstation id on ties)

    Placement is sequential because every placement moves a workstation's
    free time forward for the tasks after it.
    """

    def __init__(
        self,
        calendar: CalendarResolver,
        workstations: list[Workstation],
        config: SchedulingConfig | None = None,
        task_key: TaskSortKey | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            calendar: Calendar resolver answering workable-time queries
            workstations: All workstations that may receive tasks
            config: Optional engine configuration
            task_key: Optional key ordering tasks within a phase (overrides config.task_order)
        """
        self.calendar = calendar
        self.workstations = {ws.id: ws for ws in workstations}
        self.config = config or SchedulingConfig()
        self.task_key = task_key or task_sort_key(self.config.task_order)

    def schedule(self, graph: TaskGraph, as_of: datetime) -> CapacityResult:
        """Schedule every task of the graph.

        Args:
            graph: Tasks and precedence edges to schedule
            as_of: Nothing is scheduled before this instant

        Returns:
            CapacityResult with slots in placement order, warnings for tasks
            that could not be placed, and their ids
        """
        as_of = as_of.replace(second=0, microsecond=0)
        limit = as_of + timedelta(days=self.config.horizon_days)
        result = CapacityResult(slots=[])

        nodes = {node.id: node for node in graph.tasks}
        project_rank = {project.id: rank for rank, project in enumerate(graph.projects)}

        def priority(node: SchedulableTask) -> tuple[object, ...]:
            return (
                project_rank.get(node.project_id, len(project_rank)),
                node.phase_order,
                node.phase_id,
                self.task_key(node),
                node.id,
            )

        successors: dict[str, list[str]] = {task_id: [] for task_id in nodes}
        in_degree = dict.fromkeys(nodes, 0)
        for task_id, predecessor_ids in graph.predecessors.items():
            if task_id not in nodes:
                continue
            for predecessor_id in sorted(predecessor_ids):
                if predecessor_id in nodes:
                    successors[predecessor_id].append(task_id)
                    in_degree[task_id] += 1

        ready: list[tuple[tuple[object, ...], str]] = [
            (priority(node), node.id) for node in graph.tasks if in_degree[node.id] == 0
        ]
        heapq.heapify(ready)

        timelines = {
            ws_id: WorkstationTimeline(ws_id, ws.team) for ws_id, ws in self.workstations.items()
        }
        finished: dict[str, datetime] = {}
        handled: set[str] = set()

        logger.changes(f"Scheduling {len(nodes)} task(s) from {as_of}")

        while ready:
            _, task_id = heapq.heappop(ready)
            node = nodes[task_id]
            handled.add(task_id)

            slot = self._place(node, graph, as_of, limit, timelines, finished, result)
            if slot is not None:
                result.slots.append(slot)
                finished[task_id] = slot.end
            else:
                result.unscheduled_task_ids.append(task_id)

            for successor_id in successors[task_id]:
                in_degree[successor_id] -= 1
                if in_degree[successor_id] == 0:
                    heapq.heappush(ready, (priority(nodes[successor_id]), successor_id))

        for node in graph.tasks:
            if node.id in handled:
                continue
            result.unscheduled_task_ids.append(node.id)
            result.warnings.append(
                ScheduleWarning(
                    code=WarningCode.PRECEDENCE_CYCLE,
                    message=f"Task {node.id} is part of (or blocked by) a precedence cycle",
                    task_id=node.id,
                    project_id=node.project_id,
                )
            )

        logger.changes(
            f"Placed {len(result.slots)} task(s), {len(result.unscheduled_task_ids)} unscheduled"
        )
        return result

    def _place(  # noqa: PLR0913 - placement needs the scheduler's running state
        self,
        node: SchedulableTask,
        graph: TaskGraph,
        as_of: datetime,
        limit: datetime,
        timelines: dict[str, WorkstationTimeline],
        finished: dict[str, datetime],
        result: CapacityResult,
    ) -> ScheduleSlot | None:
        """Find the best workstation for a task and reserve it."""
        logger.checks(f"  Considering task {node.id} ({node.duration} min)")

        if not node.candidates:
            # Already reported by the graph builder
            logger.checks(f"    Skipping {node.id}: no eligible workstation")
            return None

        ready = as_of
        for predecessor_id in graph.predecessors.get(node.id, ()):
            predecessor_end = finished.get(predecessor_id)
            if predecessor_end is not None and predecessor_end > ready:
                ready = predecessor_end

        trace = debug_enabled()
        best: tuple[datetime, str, datetime] | None = None
        for workstation_id in node.candidates:
            timeline = timelines.get(workstation_id)
            if timeline is None:
                if trace:
                    logger.debug(f"      {workstation_id}: unknown workstation, skipping")
                continue

            earliest = timeline.earliest_start(ready)
            start = self.calendar.next_workable(timeline.team, earliest, limit)
            if start is None:
                if trace:
                    logger.debug(f"      {workstation_id}: no workable time before {limit}")
                continue
            end = self.calendar.add_working_minutes(timeline.team, start, node.duration, limit)
            if end is None:
                if trace:
                    logger.debug(f"      {workstation_id}: task does not fit before {limit}")
                continue

            if trace:
                logger.debug(f"      {workstation_id}: start={start}, end={end}")
            if best is None or (start, workstation_id) < (best[0], best[1]):
                best = (start, workstation_id, end)

        if best is None:
            result.warnings.append(
                ScheduleWarning(
                    code=WarningCode.CALENDAR_EXHAUSTED,
                    message=(
                        f"Task {node.id} found no workable interval within "
                        f"{self.config.horizon_days} days of {as_of}"
                    ),
                    task_id=node.id,
                    project_id=node.project_id,
                )
            )
            return None

        start, workstation_id, end = best
        timelines[workstation_id].reserve(start, end, node.id)
        logger.changes(f"  Scheduled task {node.id} on {workstation_id} from {start} to {end}")
        return ScheduleSlot(
            task_id=node.id,
            workstation_id=workstation_id,
            start=start,
            end=end,
            project_id=node.project_id,
            phase_id=node.phase_id,
        )
