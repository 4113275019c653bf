"""Task graph construction: task generation and precedence derivation."""

import math
from collections.abc import Callable

from floorsched.backlog import Backlog
from floorsched.exceptions import ValidationError
from floorsched.logger import get_logger
from floorsched.models import Phase, ProductionRoute, Project, StandardTask, Task, TaskStatus

from .config import SchedulingConfig
from .core import ScheduleWarning, SchedulableTask, TaskGraph, WarningCode
from .ordering import task_number_key

logger = get_logger()

MAX_COMPLEXITY = 100


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class TaskGraphBuilder:
    """Materialises tasks from standard tasks and derives the precedence graph."""

    def __init__(self, config: SchedulingConfig | None = None) -> None:
        self.config = config or SchedulingConfig()

    def compute_duration(self, standard_task: StandardTask, complexity: float) -> int:
        """Nominal duration in minutes: coefficient x complexity, or the fallback."""
        if not standard_task.time_coefficient:
            return self.config.default_duration_minutes
        return round_half_up(standard_task.time_coefficient * complexity)

    def route_standard_tasks(
        self, backlog: Backlog, route: ProductionRoute | None
    ) -> tuple[list[StandardTask], list[ScheduleWarning]]:
        """Standard tasks a route admits (all of them without a route).

        Ordered by day counter, longest lead time first, then task number.
        """
        warnings: list[ScheduleWarning] = []
        if route is None:
            selected = list(backlog.standard_tasks)
        else:
            selected = []
            for standard_task_id in route.standard_task_ids:
                standard_task = backlog.standard_task(standard_task_id)
                if standard_task is None:
                    warnings.append(
                        ScheduleWarning(
                            code=WarningCode.MISSING_STANDARD_TASK,
                            message=(
                                f"Route '{route.name}' references unknown standard task "
                                f"'{standard_task_id}'"
                            ),
                        )
                    )
                    continue
                if standard_task not in selected:
                    selected.append(standard_task)
        selected.sort(key=lambda st: (-st.day_counter, task_number_key(st.task_number), st.id))
        return selected, warnings

    def generate_tasks(  # noqa: PLR0913 - generation needs the full project context
        self,
        backlog: Backlog,
        project: Project,
        phase: Phase,
        route: ProductionRoute | None = None,
        complexity: float | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> tuple[list[Task], list[ScheduleWarning]]:
        """Create the tasks of a phase from the standard task catalog.

        Args:
            backlog: Snapshot holding the catalog and workstation links
            project: Project the tasks are generated for
            phase: Phase that will own the tasks
            route: Optional production route restricting the standard tasks
            complexity: 0-100 size value (defaults to the project's)
            id_factory: Optional callable minting task ids

        Returns:
            Tuple of (tasks, warnings)

        Raises:
            ValidationError: If complexity is outside 0-100
        """
        value = project.complexity if complexity is None else complexity
        if not 0 <= value <= MAX_COMPLEXITY:
            raise ValidationError(f"Complexity must be between 0 and 100, got {value}")

        standard_tasks, warnings = self.route_standard_tasks(backlog, route)

        tasks: list[Task] = []
        for index, standard_task in enumerate(standard_tasks):
            task_id = id_factory() if id_factory else f"{phase.id}-{standard_task.id}"
            workstation_ids = tuple(
                ws.id for ws in backlog.workstations_capable_of(standard_task.id)
            )
            if not workstation_ids:
                # Reported as no_workstation when the graph is built
                logger.checks(f"  Standard task {standard_task.id} has no capable workstation")
            tasks.append(
                Task(
                    id=task_id,
                    phase_id=phase.id,
                    title=f"{standard_task.name} ({project.name})",
                    duration=self.compute_duration(standard_task, value),
                    standard_task_id=standard_task.id,
                    due_date=project.due_date,
                    status=TaskStatus.TODO,
                    workstation_ids=workstation_ids,
                    created_index=index,
                )
            )

        logger.checks(
            f"Generated {len(tasks)} task(s) for {project.name} "
            f"(route={route.name if route else 'all'}, complexity={value})"
        )
        return tasks, warnings

    def build(self, backlog: Backlog, projects: list[Project]) -> TaskGraph:
        """Collect pending tasks of the given projects and link them.

        Precedence edges:
        - every pending task of a production phase precedes every pending task
          of the next production phase that has pending tasks;
        - a task whose standard task lists limit tasks waits for the pending
          tasks of those standard tasks in the same project.

        Args:
            backlog: Snapshot to read from
            projects: Projects to include, already in scheduling order

        Returns:
            TaskGraph with nodes, edges, warnings and incomplete projects
        """
        graph = TaskGraph(projects=list(projects), tasks=[], predecessors={})
        cutoff = self._production_cutoff(backlog)
        for task in backlog.tasks:
            if task.is_pending and backlog.phase(task.phase_id) is None:
                graph.warnings.append(
                    ScheduleWarning(
                        code=WarningCode.MISSING_PHASE,
                        message=f"Task {task.id} references unknown phase '{task.phase_id}'",
                        task_id=task.id,
                    )
                )

        for project in projects:
            self._add_project(backlog, project, graph, cutoff)

        logger.debug(
            f"Task graph: {len(graph.tasks)} task(s) across {len(projects)} project(s), "
            f"{sum(len(p) for p in graph.predecessors.values())} edge(s)"
        )
        return graph

    def _production_cutoff(self, backlog: Backlog) -> tuple[int, int, str] | None:
        last_step = backlog.last_production_step()
        if last_step is None:
            return None
        return task_number_key(last_step.task_number)

    def _add_project(
        self,
        backlog: Backlog,
        project: Project,
        graph: TaskGraph,
        cutoff: tuple[int, int, str] | None,
    ) -> None:
        previous_ids: list[str] = []
        pending_by_standard: dict[str, list[str]] = {}
        nodes: list[tuple[SchedulableTask, StandardTask | None]] = []

        for phase in backlog.phases_for(project.id):
            if not phase.production:
                continue

            phase_ids: list[str] = []
            for task in backlog.tasks_for(phase.id):
                if not task.is_pending:
                    continue

                standard_task: StandardTask | None = None
                if task.standard_task_id is not None:
                    standard_task = backlog.standard_task(task.standard_task_id)
                    if standard_task is None:
                        graph.warnings.append(
                            ScheduleWarning(
                                code=WarningCode.MISSING_STANDARD_TASK,
                                message=(
                                    f"Task {task.id} references unknown standard task "
                                    f"'{task.standard_task_id}'; skipped"
                                ),
                                task_id=task.id,
                                project_id=project.id,
                            )
                        )
                        graph.incomplete_projects.add(project.id)
                        continue
                    if cutoff is not None and task_number_key(standard_task.task_number) > cutoff:
                        logger.debug(
                            f"  Skipping {task.id}: after the last production step "
                            f"({standard_task.task_number})"
                        )
                        continue

                candidates = self._candidates(backlog, task, standard_task, project, graph)
                if not candidates:
                    graph.warnings.append(
                        ScheduleWarning(
                            code=WarningCode.NO_WORKSTATION,
                            message=f"Task {task.id} ({task.title}) has no eligible workstation",
                            task_id=task.id,
                            project_id=project.id,
                        )
                    )

                node = SchedulableTask(
                    id=task.id,
                    project_id=project.id,
                    phase_id=phase.id,
                    phase_order=phase.order,
                    duration=task.duration,
                    candidates=candidates,
                    standard_task_id=task.standard_task_id,
                    day_counter=standard_task.day_counter if standard_task else 0,
                    task_number=standard_task.task_number if standard_task else "",
                    created_index=task.created_index,
                )
                graph.tasks.append(node)
                graph.predecessors[node.id] = set(previous_ids)
                phase_ids.append(node.id)
                nodes.append((node, standard_task))
                if standard_task is not None:
                    pending_by_standard.setdefault(standard_task.id, []).append(node.id)

            if phase_ids:
                previous_ids = phase_ids

        for node, standard_task in nodes:
            if standard_task is None:
                continue
            for limit_id in standard_task.limit_task_ids:
                for predecessor_id in pending_by_standard.get(limit_id, []):
                    if predecessor_id != node.id:
                        graph.predecessors[node.id].add(predecessor_id)

    def _candidates(
        self,
        backlog: Backlog,
        task: Task,
        standard_task: StandardTask | None,
        project: Project,
        graph: TaskGraph,
    ) -> list[str]:
        """Known workstation ids for a task, falling back to capability links."""
        workstation_ids = list(task.workstation_ids)
        if not workstation_ids and standard_task is not None:
            workstation_ids = [ws.id for ws in backlog.workstations_capable_of(standard_task.id)]

        candidates: list[str] = []
        for workstation_id in workstation_ids:
            if backlog.workstation(workstation_id) is None:
                graph.warnings.append(
                    ScheduleWarning(
                        code=WarningCode.UNKNOWN_WORKSTATION,
                        message=(
                            f"Task {task.id} references unknown workstation '{workstation_id}'"
                        ),
                        task_id=task.id,
                        project_id=project.id,
                    )
                )
                continue
            if workstation_id not in candidates:
                candidates.append(workstation_id)
        return candidates
