"""Backlog snapshots and the shadow-state arena used by what-if simulation.

A Backlog is an immutable snapshot of every record the engine reads. Pipeline
stages receive a snapshot and never modify it; the only component allowed to
advance persisted state is the schedule store.

A ShadowArena layers hypothetical records over a real snapshot in memory, so a
simulation can schedule "real + hypothetical" without writing the hypothetical
records anywhere shared.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import TracebackType

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

logger = get_logger()


@dataclass(frozen=True)
class Backlog:
    """Immutable snapshot of the production backlog."""

    projects: tuple[Project, ...] = ()
    phases: tuple[Phase, ...] = ()
    tasks: tuple[Task, ...] = ()
    standard_tasks: tuple[StandardTask, ...] = ()
    routes: tuple[ProductionRoute, ...] = ()
    workstations: tuple[Workstation, ...] = ()
    holidays: tuple[HolidayEntry, ...] = ()

    @cached_property
    def _projects_by_id(self) -> dict[str, Project]:
        return {p.id: p for p in self.projects}

    @cached_property
    def _phases_by_id(self) -> dict[str, Phase]:
        return {p.id: p for p in self.phases}

    @cached_property
    def _standard_tasks_by_id(self) -> dict[str, StandardTask]:
        return {st.id: st for st in self.standard_tasks}

    @cached_property
    def _workstations_by_id(self) -> dict[str, Workstation]:
        return {ws.id: ws for ws in self.workstations}

    @cached_property
    def _phases_by_project(self) -> dict[str, list[Phase]]:
        grouped: dict[str, list[Phase]] = {}
        for phase in self.phases:
            grouped.setdefault(phase.project_id, []).append(phase)
        for phases in grouped.values():
            phases.sort(key=lambda p: (p.order, p.id))
        return grouped

    @cached_property
    def _tasks_by_phase(self) -> dict[str, list[Task]]:
        grouped: dict[str, list[Task]] = {}
        for task in self.tasks:
            grouped.setdefault(task.phase_id, []).append(task)
        return grouped

    def project(self, project_id: str) -> Project | None:
        return self._projects_by_id.get(project_id)

    def phase(self, phase_id: str) -> Phase | None:
        return self._phases_by_id.get(phase_id)

    def standard_task(self, standard_task_id: str) -> StandardTask | None:
        return self._standard_tasks_by_id.get(standard_task_id)

    def workstation(self, workstation_id: str) -> Workstation | None:
        return self._workstations_by_id.get(workstation_id)

    def route(self, route_id: str) -> ProductionRoute | None:
        for route in self.routes:
            if route.id == route_id:
                return route
        return None

    def phases_for(self, project_id: str) -> list[Phase]:
        """Phases of a project in their defined order."""
        return list(self._phases_by_project.get(project_id, []))

    def tasks_for(self, phase_id: str) -> list[Task]:
        return list(self._tasks_by_phase.get(phase_id, []))

    def project_for_task(self, task: Task) -> Project | None:
        phase = self.phase(task.phase_id)
        if phase is None:
            return None
        return self.project(phase.project_id)

    def workstations_capable_of(self, standard_task_id: str) -> list[Workstation]:
        """Workstations linked to a standard task, in backlog order."""
        return [ws for ws in self.workstations if standard_task_id in ws.standard_task_ids]

    def last_production_step(self) -> StandardTask | None:
        """The standard task flagged as the last production step, if any."""
        for standard_task in self.standard_tasks:
            if standard_task.last_production_step:
                return standard_task
        return None

    def all_ids(self) -> set[str]:
        """Every record id in the snapshot (used to mint collision-free ids)."""
        ids: set[str] = set()
        for group in (
            self.projects,
            self.phases,
            self.tasks,
            self.standard_tasks,
            self.routes,
            self.workstations,
        ):
            ids.update(item.id for item in group)
        return ids

    def extend(
        self,
        *,
        projects: Iterable[Project] = (),
        phases: Iterable[Phase] = (),
        tasks: Iterable[Task] = (),
    ) -> Backlog:
        """Return a new snapshot with extra projects, phases and tasks appended.

        New projects get creation indexes after the existing ones so that
        creation-order scheduling puts them last.
        """
        next_index = max((p.created_index for p in self.projects), default=-1) + 1
        new_projects = [
            replace(project, created_index=next_index + offset)
            for offset, project in enumerate(projects)
        ]
        return replace(
            self,
            projects=self.projects + tuple(new_projects),
            phases=self.phases + tuple(phases),
            tasks=self.tasks + tuple(tasks),
        )


@dataclass
class _Layer:
    projects: list[Project] = field(default_factory=list[Project])
    phases: list[Phase] = field(default_factory=list[Phase])
    tasks: list[Task] = field(default_factory=list[Task])


class ShadowArena:
    """An in-memory overlay of hypothetical records on top of a real backlog.

    The base snapshot is never modified. ``view()`` returns a combined snapshot
    for the pipeline to run over; ``discard()`` drops the hypothetical layer.
    Usable as a context manager, in which case the layer is discarded on exit
    whether or not the block raised.
    """

    def __init__(self, base: Backlog, id_prefix: str = "sim") -> None:
        self.base = base
        self.id_prefix = id_prefix
        self._layer = _Layer()
        self._taken_ids = base.all_ids()
        self._counter = 0
        self.discarded = False

    def __enter__(self) -> ShadowArena:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.discard()

    def new_id(self, kind: str) -> str:
        """Mint an id that does not collide with any base or shadow record."""
        while True:
            self._counter += 1
            candidate = f"{self.id_prefix}-{kind}-{self._counter}"
            if candidate not in self._taken_ids:
                self._taken_ids.add(candidate)
                return candidate

    def add(
        self,
        *,
        projects: Iterable[Project] = (),
        phases: Iterable[Phase] = (),
        tasks: Iterable[Task] = (),
    ) -> None:
        if self.discarded:
            raise RuntimeError("Cannot add records to a discarded shadow arena")
        self._layer.projects.extend(projects)
        self._layer.phases.extend(phases)
        self._layer.tasks.extend(tasks)

    @property
    def hypothetical_project_ids(self) -> set[str]:
        return {p.id for p in self._layer.projects}

    def view(self) -> Backlog:
        """Combined snapshot of the real backlog plus the hypothetical layer."""
        if self.discarded:
            return self.base
        return self.base.extend(
            projects=self._layer.projects,
            phases=self._layer.phases,
            tasks=self._layer.tasks,
        )

    def discard(self) -> None:
        if self.discarded:
            return
        logger.debug(
            f"Discarding shadow arena: {len(self._layer.projects)} project(s), "
            f"{len(self._layer.tasks)} task(s)"
        )
        self._layer = _Layer()
        self.discarded = True
