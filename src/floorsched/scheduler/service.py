"""High-level scheduling service."""

from datetime import datetime

from floorsched.backlog import Backlog

from .config import SchedulingConfig
from .core import SchedulingResult, SimulationResult
from .ordering import TaskSortKey
from .persist import InMemoryScheduleStore, ScheduleStore
from .pipeline import SchedulingPipeline
from .simulation import HypotheticalProject, SimulationCoordinator


class SchedulingEngine:
    """Entry point for schedule generation and what-if simulation.

    This engine coordinates:
    - SchedulingPipeline (selection, task graph, capacity scheduling, forecasting)
    - ScheduleStore (the only writer of shared schedule state)
    - SimulationCoordinator (hypothetical insertions over a shadow arena)
    """

    def __init__(
        self,
        backlog: Backlog,
        store: ScheduleStore | None = None,
        config: SchedulingConfig | None = None,
        task_key: TaskSortKey | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            backlog: Snapshot of the production backlog
            store: Where schedules are persisted (defaults to an in-memory store)
            config: Optional scheduling configuration
            task_key: Optional key ordering tasks within a phase
        """
        self.backlog = backlog
        self.store: ScheduleStore = store if store is not None else InMemoryScheduleStore()
        self.config = config or SchedulingConfig()
        self.pipeline = SchedulingPipeline(self.config, task_key=task_key)

    def generate_schedule(
        self, as_of: datetime | None = None, persist: bool = True
    ) -> SchedulingResult:
        """Compute the schedule of every selected project.

        Args:
            as_of: Nothing is scheduled before this instant (defaults to now)
            persist: Write slots and completion records to the store; stored slots of
                backlog projects that no longer have any are cleared

        Returns:
            SchedulingResult with slots, completions, warnings and buffers
        """
        result = self.pipeline.run(self.backlog, as_of)
        if persist:
            self.store.persist(result.slots, [p.id for p in self.backlog.projects])
            self.store.persist_completions(result.completions)
        return result

    def simulate_insertion(
        self,
        hypothetical: HypotheticalProject,
        route_id: str | None = None,
        complexity: float = 50,
        as_of: datetime | None = None,
    ) -> SimulationResult:
        """Forecast the effect of inserting a new project on existing ones."""
        coordinator = SimulationCoordinator(self.backlog, self.store, self.pipeline, self.config)
        return coordinator.simulate(
            hypothetical, route_id=route_id, complexity=complexity, as_of=as_of
        )
