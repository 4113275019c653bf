"""YAML parser for production backlogs."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .backlog import Backlog
from .exceptions import MissingReferenceError, ParseError, ValidationError
from .logger import get_logger
from .models import (
    HolidayEntry,
    Phase,
    ProductionRoute,
    Project,
    StandardTask,
    Task,
    Workstation,
)
from .scheduler.config import SchedulingConfig
from .scheduler.graph import TaskGraphBuilder
from .schemas import BacklogSchema, PhaseSchema, ProjectSchema

logger = get_logger()


class BacklogParser:
    """Parser for backlog YAML files.

    Catalog entries (standard tasks, routes, workstations) are read first so
    that phases can reference them, including phases whose tasks are
    generated from a route.
    """

    def __init__(self, config: SchedulingConfig | None = None) -> None:
        self.config = config or SchedulingConfig()
        self.builder = TaskGraphBuilder(self.config)

    def parse_file(self, file_path: Path | str) -> Backlog:
        """Parse a YAML file into a Backlog."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        return self.parse_data(data)  # type: ignore[arg-type]

    def parse_data(self, data: dict[str, Any]) -> Backlog:
        """Validate loaded YAML data and convert it into a Backlog."""
        try:
            schema = BacklogSchema(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid backlog structure: {e}") from e

        catalog = self._parse_catalog(schema)

        projects: list[Project] = []
        phases: list[Phase] = []
        tasks: list[Task] = []
        for index, (project_id, project_data) in enumerate(schema.projects.items()):
            project = Project(
                id=project_id,
                name=project_data.name,
                client=project_data.client,
                start_date=project_data.start_date,
                due_date=project_data.due_date,
                status=project_data.status,
                priority=project_data.priority,
                complexity=project_data.complexity,
                created_index=index,
            )
            projects.append(project)
            project_phases, project_tasks = self._parse_phases(catalog, project, project_data)
            phases.extend(project_phases)
            tasks.extend(project_tasks)

        backlog = Backlog(
            projects=tuple(projects),
            phases=tuple(phases),
            tasks=tuple(tasks),
            standard_tasks=catalog.standard_tasks,
            routes=catalog.routes,
            workstations=catalog.workstations,
            holidays=catalog.holidays,
        )
        self._check_unique_ids(backlog)
        logger.checks(
            f"Loaded backlog: {len(projects)} project(s), {len(phases)} phase(s), "
            f"{len(tasks)} task(s), {len(catalog.workstations)} workstation(s)"
        )
        return backlog

    def _parse_catalog(self, schema: BacklogSchema) -> Backlog:
        standard_tasks = tuple(
            StandardTask(
                id=standard_task_id,
                task_number=data.task_number,
                name=data.name,
                time_coefficient=data.time_coefficient,
                day_counter=data.day_counter,
                hourly_cost=data.hourly_cost,
                limit_task_ids=tuple(data.limits),
                last_production_step=data.last_production_step,
            )
            for standard_task_id, data in schema.standard_tasks.items()
        )
        known = {st.id for st in standard_tasks}

        flagged = [st.id for st in standard_tasks if st.last_production_step]
        if len(flagged) > 1:
            raise ValidationError(
                f"Only one standard task may be the last production step, got {flagged}"
            )
        for standard_task in standard_tasks:
            for limit_id in standard_task.limit_task_ids:
                if limit_id not in known:
                    raise MissingReferenceError(
                        f"Standard task '{standard_task.id}' limits unknown standard task "
                        f"'{limit_id}'"
                    )

        routes = []
        for route_id, data in schema.routes.items():
            for standard_task_id in data.standard_tasks:
                if standard_task_id not in known:
                    raise MissingReferenceError(
                        f"Route '{route_id}' references unknown standard task '{standard_task_id}'"
                    )
            routes.append(
                ProductionRoute(
                    id=route_id, name=data.name, standard_task_ids=tuple(data.standard_tasks)
                )
            )

        workstations = []
        for workstation_id, data in schema.workstations.items():
            for standard_task_id in data.standard_tasks:
                if standard_task_id not in known:
                    raise MissingReferenceError(
                        f"Workstation '{workstation_id}' references unknown standard task "
                        f"'{standard_task_id}'"
                    )
            workstations.append(
                Workstation(
                    id=workstation_id,
                    name=data.name,
                    team=data.team,
                    standard_task_ids=tuple(data.standard_tasks),
                )
            )

        holidays = tuple(HolidayEntry(team=h.team, date=h.date) for h in schema.holidays)
        return Backlog(
            standard_tasks=standard_tasks,
            routes=tuple(routes),
            workstations=tuple(workstations),
            holidays=holidays,
        )

    def _parse_phases(
        self, catalog: Backlog, project: Project, project_data: ProjectSchema
    ) -> tuple[list[Phase], list[Task]]:
        phases: list[Phase] = []
        tasks: list[Task] = []
        for position, (phase_id, phase_data) in enumerate(project_data.phases.items(), start=1):
            phase = Phase(
                id=phase_id,
                project_id=project.id,
                name=phase_data.name,
                order=phase_data.order if phase_data.order is not None else position,
                start_date=phase_data.start_date,
                end_date=phase_data.end_date,
                production=phase_data.production,
            )
            phases.append(phase)
            tasks.extend(self._parse_tasks(catalog, project, phase, phase_data))
        return phases, tasks

    def _parse_tasks(
        self, catalog: Backlog, project: Project, phase: Phase, phase_data: PhaseSchema
    ) -> list[Task]:
        tasks: list[Task] = []
        if phase_data.generate is not None:
            route = None
            if phase_data.generate.route is not None:
                route = catalog.route(phase_data.generate.route)
                if route is None:
                    raise MissingReferenceError(
                        f"Phase '{phase.id}' generates from unknown route "
                        f"'{phase_data.generate.route}'"
                    )
            generated, _ = self.builder.generate_tasks(
                catalog, project, phase, route=route, complexity=phase_data.generate.complexity
            )
            tasks.extend(generated)

        for task_id, data in phase_data.tasks.items():
            standard_task = None
            if data.standard_task is not None:
                standard_task = catalog.standard_task(data.standard_task)
                if standard_task is None:
                    raise MissingReferenceError(
                        f"Task '{task_id}' references unknown standard task '{data.standard_task}'"
                    )
            for workstation_id in data.workstations:
                if catalog.workstation(workstation_id) is None:
                    raise MissingReferenceError(
                        f"Task '{task_id}' references unknown workstation '{workstation_id}'"
                    )

            if data.duration is not None:
                duration = data.duration
            else:
                assert standard_task is not None  # Guaranteed by TaskSchema
                duration = self.builder.compute_duration(standard_task, project.complexity)

            title = data.title or (standard_task.name if standard_task else task_id)
            tasks.append(
                Task(
                    id=task_id,
                    phase_id=phase.id,
                    title=title,
                    duration=duration,
                    standard_task_id=data.standard_task,
                    due_date=data.due_date or project.due_date,
                    status=data.status,
                    workstation_ids=tuple(data.workstations),
                    created_index=len(tasks),
                )
            )
        return tasks

    def _check_unique_ids(self, backlog: Backlog) -> None:
        for kind, records in (("phase", backlog.phases), ("task", backlog.tasks)):
            seen: set[str] = set()
            for record in records:
                if record.id in seen:
                    raise ValidationError(f"Duplicate {kind} id '{record.id}'")
                seen.add(record.id)


def load_backlog(file_path: Path | str, config: SchedulingConfig | None = None) -> Backlog:
    """Load and validate a backlog YAML file.

    Args:
        file_path: Path to the backlog file
        config: Scheduling configuration (for fallback durations of generated tasks)

    Returns:
        Backlog snapshot

    Raises:
        ParseError: If the file is missing or not valid YAML
        ValidationError: If the content does not match the backlog schema
        MissingReferenceError: If a record references an unknown id
    """
    return BacklogParser(config).parse_file(file_path)
