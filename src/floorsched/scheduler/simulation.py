"""What-if simulation of inserting a hypothetical project."""

from dataclasses import dataclass
from datetime import date, datetime

from floorsched.backlog import Backlog, ShadowArena
from floorsched.exceptions import SimulationCleanupError
from floorsched.logger import get_logger
from floorsched.models import Phase, Project, ProjectStatus

from .config import SchedulingConfig
from .core import (
    ProjectCompletionInfo,
    ProjectImpact,
    ScheduleWarning,
    SimulationResult,
    WarningCode,
)
from .persist import ScheduleStore
from .pipeline import SchedulingPipeline, normalize_as_of

logger = get_logger()

HYPOTHETICAL_PHASE_NAME = "Production"


@dataclass(frozen=True)
class HypotheticalProject:
    """A project that does not exist yet, described for a what-if run."""

    name: str
    client: str
    due_date: date  # Installation date
    start_date: date | None = None  # Defaults to the as-of date
    priority: int | None = None


class SimulationCoordinator:
    """Schedules real plus hypothetical work without touching shared state.

    The hypothetical project, its production phase and its generated tasks
    live only in a ShadowArena. After the run the arena is discarded and,
    when configured, the real-only schedule is recomputed and persisted.
    """

    def __init__(
        self,
        backlog: Backlog,
        store: ScheduleStore,
        pipeline: SchedulingPipeline,
        config: SchedulingConfig | None = None,
    ) -> None:
        self.backlog = backlog
        self.store = store
        self.pipeline = pipeline
        self.config = config or pipeline.config

    def simulate(
        self,
        hypothetical: HypotheticalProject,
        route_id: str | None = None,
        complexity: float = 50,
        as_of: datetime | None = None,
    ) -> SimulationResult:
        """Simulate inserting a project and report its effect on real projects.

        Args:
            hypothetical: Project to insert
            route_id: Optional production route restricting generated tasks
            complexity: 0-100 size value scaling generated task durations
            as_of: Reference instant (defaults to now)

        Returns:
            SimulationResult with the new project's forecast and the impacts

        Raises:
            ValidationError: If complexity is outside 0-100
            SimulationCleanupError: If the real-only schedule cannot be restored
        """
        as_of = normalize_as_of(as_of)
        logger.changes(f"Simulating insertion of '{hypothetical.name}' as of {as_of}")

        baseline = self._baseline(as_of)
        warnings: list[ScheduleWarning] = []

        route = None
        if route_id is not None:
            route = self.backlog.route(route_id)
            if route is None:
                warnings.append(
                    ScheduleWarning(
                        code=WarningCode.UNKNOWN_ROUTE,
                        message=f"Unknown route '{route_id}'; using all standard tasks",
                    )
                )

        arena = ShadowArena(self.backlog, id_prefix=self.config.simulation.id_prefix)
        try:
            project = Project(
                id=arena.new_id("project"),
                name=hypothetical.name,
                client=hypothetical.client,
                start_date=hypothetical.start_date or as_of.date(),
                due_date=hypothetical.due_date,
                status=ProjectStatus.PLANNED,
                priority=hypothetical.priority,
                complexity=complexity,
            )
            phase = Phase(
                id=arena.new_id("phase"),
                project_id=project.id,
                name=HYPOTHETICAL_PHASE_NAME,
                order=1,
                start_date=project.start_date,
                production=True,
            )
            tasks, generation_warnings = self.pipeline.builder.generate_tasks(
                self.backlog,
                project,
                phase,
                route=route,
                complexity=complexity,
                id_factory=lambda: arena.new_id("task"),
            )
            warnings.extend(generation_warnings)
            arena.add(projects=[project], phases=[phase], tasks=tasks)

            simulated = self.pipeline.run(
                arena.view(), as_of, force_include=arena.hypothetical_project_ids
            )
            warnings.extend(simulated.warnings)

            new_completion = None
            for info in simulated.completions:
                if info.project_id == project.id:
                    new_completion = info
            real_completions = [
                info
                for info in simulated.completions
                if info.project_id not in arena.hypothetical_project_ids
            ]
            impacts = self.diff(baseline, real_completions)
            logger.changes(
                f"Simulation placed {len(simulated.slots)} slot(s); "
                f"{len(impacts)} project(s) impacted"
            )

            return SimulationResult(
                new_project_completion=new_completion,
                impacted_projects=impacts,
                original_completions=baseline,
                simulated_completions=real_completions,
                total_schedule_slots=len(simulated.slots),
                warnings=warnings,
            )
        finally:
            arena.discard()
            if self.config.simulation.restore_persisted:
                self.restore(as_of)

    def _baseline(self, as_of: datetime) -> list[ProjectCompletionInfo]:
        """Completions before the insertion: from persisted slots when there are any."""
        persisted = self.store.load_slots()
        if persisted:
            logger.checks(f"  Baseline from {len(persisted)} persisted slot(s)")
            return self.pipeline.forecast(self.backlog, persisted, as_of)
        logger.checks("  Nothing persisted; computing baseline from the real backlog")
        return self.pipeline.run(self.backlog, as_of).completions

    def diff(
        self, baseline: list[ProjectCompletionInfo], simulated: list[ProjectCompletionInfo]
    ) -> list[ProjectImpact]:
        """Projects whose status changed or whose slack moved by at least the threshold."""
        original_by_id = {info.project_id: info for info in baseline}
        impacts: list[ProjectImpact] = []
        for info in simulated:
            original = original_by_id.get(info.project_id)
            if original is None:
                continue
            impact = ProjectImpact(
                project_id=info.project_id,
                project_name=info.project_name,
                client=info.client,
                original_status=original.status,
                new_status=info.status,
                original_days_remaining=original.days_remaining,
                new_days_remaining=info.days_remaining,
            )
            status_changed = impact.original_status != impact.new_status
            shifted = abs(impact.days_difference) >= self.config.simulation.min_impact_days
            if status_changed or shifted:
                impacts.append(impact)
        return impacts

    def restore(self, as_of: datetime) -> None:
        """Recompute the real-only schedule and persist it.

        Raises:
            SimulationCleanupError: If every attempt to persist fails
        """
        attempts = 1 + max(self.config.simulation.restore_retries, 0)
        for attempt in range(1, attempts + 1):
            try:
                result = self.pipeline.run(self.backlog, as_of)
                self.store.persist(result.slots, [p.id for p in self.backlog.projects])
                self.store.persist_completions(result.completions)
                logger.checks(f"  Restored real-only schedule ({len(result.slots)} slot(s))")
                return
            except Exception as e:
                if attempt < attempts:
                    logger.checks(f"  Restore attempt {attempt} failed: {e}; retrying")
                    continue
                logger.critical(
                    f"Could not restore the persisted schedule after {attempts} attempt(s): {e}"
                )
                raise SimulationCleanupError(
                    f"Failed to restore the persisted schedule after simulation: {e}. "
                    "The stored schedule may be stale and needs manual regeneration."
                ) from e
