"""Tests for task generation and precedence derivation."""

from datetime import date

import pytest

from floorsched.backlog import Backlog
from floorsched.exceptions import ValidationError
from floorsched.models import (
    Phase,
    ProductionRoute,
    Project,
    StandardTask,
    Task,
    TaskStatus,
    Workstation,
)
from floorsched.scheduler import SchedulingConfig, TaskGraphBuilder, WarningCode

PROJECT = Project(
    id="p1",
    name="Kitchen Smith",
    client="Smith",
    start_date=date(2024, 1, 8),
    due_date=date(2024, 2, 1),
    complexity=50,
)


def _catalog_backlog(**overrides: object) -> Backlog:
    standard_tasks = (
        StandardTask(
            id="st-a", task_number="20", name="Assembly", time_coefficient=2, day_counter=2
        ),
        StandardTask(
            id="st-b", task_number="10", name="Cutting", time_coefficient=3, day_counter=5
        ),
        StandardTask(id="st-c", task_number="9", name="Drilling", day_counter=2),
    )
    workstations = (Workstation(id="ws-1", name="Bench", standard_task_ids=("st-a",)),)
    fields: dict[str, object] = {
        "projects": (PROJECT,),
        "standard_tasks": standard_tasks,
        "workstations": workstations,
    }
    fields.update(overrides)
    return Backlog(**fields)  # type: ignore[arg-type]


def _task(task_id: str, phase_id: str, **kwargs: object) -> Task:
    values: dict[str, object] = {"title": task_id, "duration": 60, "workstation_ids": ("ws-1",)}
    values.update(kwargs)
    return Task(id=task_id, phase_id=phase_id, **values)  # type: ignore[arg-type]


class TestComputeDuration:
    """Tests for duration derivation from coefficients."""

    def test_coefficient_times_complexity(self):
        builder = TaskGraphBuilder()
        standard_task = StandardTask(id="st", task_number="1", name="x", time_coefficient=2)

        assert builder.compute_duration(standard_task, 50) == 100

    def test_rounds_half_up(self):
        """62.5 minutes rounds to 63."""
        builder = TaskGraphBuilder()
        standard_task = StandardTask(id="st", task_number="1", name="x", time_coefficient=1.25)

        assert builder.compute_duration(standard_task, 50) == 63

    def test_missing_or_zero_coefficient_uses_fallback(self):
        """Standard tasks without a usable coefficient take the configured fallback."""
        builder = TaskGraphBuilder(SchedulingConfig(default_duration_minutes=45))

        assert builder.compute_duration(StandardTask(id="a", task_number="1", name="x"), 50) == 45
        assert (
            builder.compute_duration(
                StandardTask(id="b", task_number="2", name="y", time_coefficient=0), 50
            )
            == 45
        )


class TestGenerateTasks:
    """Tests for materialising tasks from the catalog."""

    def test_generates_all_standard_tasks_in_lead_time_order(self):
        """Longest day counter first, then natural task number order."""
        backlog = _catalog_backlog()
        phase = Phase(id="ph", project_id="p1", name="Production", order=1)

        tasks, warnings = TaskGraphBuilder().generate_tasks(backlog, PROJECT, phase)

        assert warnings == []
        assert [t.standard_task_id for t in tasks] == ["st-b", "st-c", "st-a"]
        assert [t.id for t in tasks] == ["ph-st-b", "ph-st-c", "ph-st-a"]
        assert [t.duration for t in tasks] == [150, 60, 100]
        assert all(t.due_date == PROJECT.due_date for t in tasks)
        assert all(t.status == TaskStatus.TODO for t in tasks)
        assert tasks[2].workstation_ids == ("ws-1",)
        assert tasks[0].workstation_ids == ()
        assert tasks[0].title == "Cutting (Kitchen Smith)"

    def test_route_restricts_standard_tasks(self):
        """Only route members are generated."""
        route = ProductionRoute(id="r1", name="Simple", standard_task_ids=("st-a",))
        backlog = _catalog_backlog(routes=(route,))
        phase = Phase(id="ph", project_id="p1", name="Production", order=1)

        tasks, _ = TaskGraphBuilder().generate_tasks(backlog, PROJECT, phase, route=route)

        assert [t.standard_task_id for t in tasks] == ["st-a"]

    def test_explicit_complexity_overrides_project(self):
        backlog = _catalog_backlog()
        phase = Phase(id="ph", project_id="p1", name="Production", order=1)

        tasks, _ = TaskGraphBuilder().generate_tasks(backlog, PROJECT, phase, complexity=100)

        assert [t.duration for t in tasks] == [300, 60, 200]

    def test_id_factory_mints_ids(self):
        backlog = _catalog_backlog()
        phase = Phase(id="ph", project_id="p1", name="Production", order=1)
        counter = iter(range(1, 10))

        tasks, _ = TaskGraphBuilder().generate_tasks(
            backlog, PROJECT, phase, id_factory=lambda: f"t{next(counter)}"
        )

        assert [t.id for t in tasks] == ["t1", "t2", "t3"]

    def test_complexity_out_of_range(self):
        """Complexity outside 0-100 is rejected."""
        backlog = _catalog_backlog()
        phase = Phase(id="ph", project_id="p1", name="Production", order=1)

        with pytest.raises(ValidationError, match="between 0 and 100"):
            TaskGraphBuilder().generate_tasks(backlog, PROJECT, phase, complexity=101)
        with pytest.raises(ValidationError):
            TaskGraphBuilder().generate_tasks(backlog, PROJECT, phase, complexity=-1)

    def test_route_with_unknown_standard_task_warns(self):
        route = ProductionRoute(id="r1", name="Broken", standard_task_ids=("st-a", "st-zz"))
        backlog = _catalog_backlog(routes=(route,))
        phase = Phase(id="ph", project_id="p1", name="Production", order=1)

        tasks, warnings = TaskGraphBuilder().generate_tasks(backlog, PROJECT, phase, route=route)

        assert len(tasks) == 1
        assert [w.code for w in warnings] == [WarningCode.MISSING_STANDARD_TASK]


class TestBuild:
    """Tests for building the precedence graph."""

    def test_phase_edges_skip_phases_without_pending_tasks(self):
        """Phase 3 waits for phase 1 when phase 2 is entirely completed."""
        phases = (
            Phase(id="ph1", project_id="p1", name="Cut", order=1),
            Phase(id="ph2", project_id="p1", name="Edge", order=2),
            Phase(id="ph3", project_id="p1", name="Assemble", order=3),
        )
        tasks = (
            _task("a1", "ph1"),
            _task("a2", "ph1"),
            _task("b1", "ph2", status=TaskStatus.COMPLETED),
            _task("c1", "ph3"),
        )
        backlog = _catalog_backlog(phases=phases, tasks=tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert [node.id for node in graph.tasks] == ["a1", "a2", "c1"]
        assert graph.predecessors["a1"] == set()
        assert graph.predecessors["c1"] == {"a1", "a2"}

    def test_non_production_phase_is_ignored(self):
        phases = (
            Phase(id="ph1", project_id="p1", name="Production", order=1),
            Phase(id="ph2", project_id="p1", name="Installation", order=2, production=False),
        )
        tasks = (_task("a1", "ph1"), _task("i1", "ph2"))
        backlog = _catalog_backlog(phases=phases, tasks=tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert [node.id for node in graph.tasks] == ["a1"]

    def test_limit_tasks_add_edges_within_phase(self):
        """A task waits for the pending tasks of its limit standard tasks."""
        standard_tasks = (
            StandardTask(id="st-a", task_number="10", name="Cutting"),
            StandardTask(id="st-b", task_number="20", name="Edging", limit_task_ids=("st-a",)),
        )
        phases = (Phase(id="ph1", project_id="p1", name="Production", order=1),)
        tasks = (
            _task("edge", "ph1", standard_task_id="st-b"),
            _task("cut", "ph1", standard_task_id="st-a"),
        )
        backlog = _catalog_backlog(phases=phases, tasks=tasks, standard_tasks=standard_tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert graph.predecessors["edge"] == {"cut"}
        assert graph.predecessors["cut"] == set()

    def test_missing_standard_task_skips_task(self):
        phases = (Phase(id="ph1", project_id="p1", name="Production", order=1),)
        tasks = (_task("a1", "ph1", standard_task_id="st-missing"), _task("a2", "ph1"))
        backlog = _catalog_backlog(phases=phases, tasks=tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert [node.id for node in graph.tasks] == ["a2"]
        assert [w.code for w in graph.warnings] == [WarningCode.MISSING_STANDARD_TASK]
        assert graph.incomplete_projects == {"p1"}

    def test_missing_phase_is_reported(self):
        backlog = _catalog_backlog(tasks=(_task("orphan", "ph-missing"),))

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert graph.tasks == []
        assert [w.code for w in graph.warnings] == [WarningCode.MISSING_PHASE]

    def test_candidates_fall_back_to_capability_links(self):
        phases = (Phase(id="ph1", project_id="p1", name="Production", order=1),)
        tasks = (_task("a1", "ph1", standard_task_id="st-a", workstation_ids=()),)
        backlog = _catalog_backlog(phases=phases, tasks=tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert graph.tasks[0].candidates == ["ws-1"]

    def test_no_workstation_keeps_node_with_warning(self):
        phases = (Phase(id="ph1", project_id="p1", name="Production", order=1),)
        tasks = (_task("a1", "ph1", standard_task_id="st-b", workstation_ids=()),)
        backlog = _catalog_backlog(phases=phases, tasks=tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert graph.tasks[0].candidates == []
        assert [w.code for w in graph.warnings] == [WarningCode.NO_WORKSTATION]

    def test_unknown_workstation_is_dropped(self):
        phases = (Phase(id="ph1", project_id="p1", name="Production", order=1),)
        tasks = (_task("a1", "ph1", workstation_ids=("ws-gone", "ws-1", "ws-1")),)
        backlog = _catalog_backlog(phases=phases, tasks=tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert graph.tasks[0].candidates == ["ws-1"]
        assert [w.code for w in graph.warnings] == [WarningCode.UNKNOWN_WORKSTATION]

    def test_tasks_after_last_production_step_are_excluded(self):
        standard_tasks = (
            StandardTask(id="st-a", task_number="10", name="Cutting"),
            StandardTask(id="st-b", task_number="20", name="Packing", last_production_step=True),
            StandardTask(id="st-c", task_number="30", name="Delivery"),
        )
        phases = (Phase(id="ph1", project_id="p1", name="Production", order=1),)
        tasks = (
            _task("cut", "ph1", standard_task_id="st-a"),
            _task("pack", "ph1", standard_task_id="st-b"),
            _task("deliver", "ph1", standard_task_id="st-c"),
        )
        backlog = _catalog_backlog(phases=phases, tasks=tasks, standard_tasks=standard_tasks)

        graph = TaskGraphBuilder().build(backlog, [PROJECT])

        assert [node.id for node in graph.tasks] == ["cut", "pack"]
