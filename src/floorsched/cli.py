"""Command-line interface for floorsched."""

from __future__ import annotations

import csv
from datetime import date, datetime
from pathlib import Path
from typing import Annotated

import typer

from . import context
from .backlog import Backlog
from .exceptions import FloorschedError, SimulationCleanupError
from .logger import setup_logger
from .parser import load_backlog
from .scheduler import (
    HypotheticalProject,
    ProjectCompletionInfo,
    SchedulingConfig,
    SchedulingEngine,
    SchedulingResult,
    SimulationResult,
    YamlScheduleStore,
)
from .unified_config import UnifiedConfig, discover_config

app = typer.Typer(
    name="floorsched",
    help="Production scheduling and completion forecasting for workshop backlogs",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to unified config file (default: floorsched_config.yaml)",
        ),
    ] = None,
    store: Annotated[
        Path | None,
        typer.Option(
            "--store",
            help=f"Path to the schedule store file (default: {context.DEFAULT_STORE_PATH})",
        ),
    ] = None,
) -> None:
    """Global options for floorsched commands."""
    setup_logger(verbose)
    context.set_config_path(config)
    context.set_store_path(store)


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _load_config(backlog_path: Path | None) -> UnifiedConfig:
    try:
        config = discover_config(backlog_path)
    except (FileNotFoundError, ValueError) as e:
        raise _fail(f"Invalid config: {e}") from None
    return config or UnifiedConfig()


def _store_for(config: UnifiedConfig) -> YamlScheduleStore:
    path = context.get_store_path() or config.store.path or context.DEFAULT_STORE_PATH
    return YamlScheduleStore(path)


def _load(file: Path, scheduler_config: SchedulingConfig) -> Backlog:
    try:
        return load_backlog(file, scheduler_config)
    except FloorschedError as e:
        raise _fail(str(e)) from None


def _parse_as_of(value: str | None) -> datetime | None:
    """Parse an --as-of option (YYYY-MM-DD or YYYY-MM-DDTHH:MM)."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise _fail(
            f"Invalid date format '{value}'. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM format."
        ) from None


def _parse_date_option(value: str, option_name: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise _fail(
            f"Invalid date format for --{option_name} '{value}'. Use YYYY-MM-DD format."
        ) from None


def _format_ts(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value is not None else "-"


def _display_completions(completions: list[ProjectCompletionInfo]) -> None:
    for info in completions:
        flag = " (incomplete)" if info.incomplete else ""
        typer.echo(
            f"  {info.project_name} [{info.client}]: {info.status.value}{flag}, "
            f"ends {_format_ts(info.last_production_step_end)}, "
            f"due {info.due_date.isoformat()}, {info.days_remaining} working day(s) remaining"
        )


def _display_schedule_results(backlog: Backlog, result: SchedulingResult) -> None:
    typer.echo(f"Schedule as of {_format_ts(result.as_of)}:")
    if not result.slots:
        typer.echo("  (nothing scheduled)")
    for slot in result.slots:
        project = backlog.project(slot.project_id)
        project_name = project.name if project else slot.project_id
        typer.echo(
            f"  {slot.task_id}: {slot.workstation_id} "
            f"{_format_ts(slot.start)} -> {_format_ts(slot.end)} ({project_name})"
        )

    typer.echo("")
    typer.echo("Completions:")
    _display_completions(result.completions)

    busy = {ws: minutes for ws, minutes in result.buffers.items() if minutes}
    if busy:
        typer.echo("")
        typer.echo("Idle time between tasks:")
        for workstation_id, minutes in sorted(busy.items()):
            typer.echo(f"  {workstation_id}: {minutes} min")


def _display_simulation_results(result: SimulationResult) -> None:
    typer.echo("New project:")
    if result.new_project_completion is None:
        typer.echo("  (not scheduled)")
    else:
        _display_completions([result.new_project_completion])

    typer.echo("")
    if not result.impacted_projects:
        typer.echo("No existing project is impacted.")
    else:
        typer.echo("Impacted projects:")
        for impact in result.impacted_projects:
            typer.echo(
                f"  {impact.project_name} [{impact.client}]: "
                f"{impact.original_status.value} -> {impact.new_status.value}, "
                f"{impact.days_difference:+d} working day(s) of slack lost"
            )
    typer.echo("")
    typer.echo(f"Total slots in simulated schedule: {result.total_schedule_slots}")


def _export_schedule_csv(backlog: Backlog, result: SchedulingResult, output_path: Path) -> None:
    """Export schedule slots to CSV."""
    with output_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["task_id", "workstation_id", "project_id", "project_name", "start", "end"])
        for slot in result.slots:
            project = backlog.project(slot.project_id)
            writer.writerow(
                [
                    slot.task_id,
                    slot.workstation_id,
                    slot.project_id,
                    project.name if project else "",
                    slot.start.isoformat(),
                    slot.end.isoformat(),
                ]
            )


def _display_warnings(warnings: list[object]) -> None:
    if warnings:
        typer.echo("\nWarnings:", err=True)
        for warning in warnings:
            typer.echo(f"  - {warning}", err=True)


@app.command()
def schedule(
    file: Annotated[Path, typer.Argument(help="Path to the backlog YAML file")] = Path(
        "backlog.yaml"
    ),
    as_of: Annotated[
        str | None,
        typer.Option(
            "--as-of",
            help="Schedule from this instant (YYYY-MM-DD or YYYY-MM-DDTHH:MM). Defaults to now",
        ),
    ] = None,
    persist: Annotated[
        bool,
        typer.Option("--persist/--no-persist", help="Write the result to the schedule store"),
    ] = True,
    output_csv: Annotated[
        Path | None,
        typer.Option("--output-csv", help="Export schedule slots to CSV file"),
    ] = None,
) -> None:
    """Compute the production schedule and completion forecasts."""
    parsed_as_of = _parse_as_of(as_of)
    config = _load_config(file)
    backlog = _load(file, config.scheduler)

    engine = SchedulingEngine(backlog, _store_for(config), config.scheduler)
    try:
        result = engine.generate_schedule(as_of=parsed_as_of, persist=persist)
    except (FloorschedError, OSError, ValueError) as e:
        raise _fail(str(e)) from None

    if output_csv:
        _export_schedule_csv(backlog, result, output_csv)
        typer.echo(f"Schedule exported to {output_csv}")
    else:
        _display_schedule_results(backlog, result)

    _display_warnings(list(result.warnings))


@app.command()
def simulate(  # noqa: PLR0913 - CLI command needs multiple options
    file: Annotated[Path, typer.Argument(help="Path to the backlog YAML file")] = Path(
        "backlog.yaml"
    ),
    *,
    name: Annotated[str, typer.Option("--name", help="Name of the hypothetical project")],
    due_date: Annotated[
        str, typer.Option("--due-date", help="Installation date of the project (YYYY-MM-DD)")
    ],
    client: Annotated[str, typer.Option("--client", help="Client name")] = "",
    start_date: Annotated[
        str | None, typer.Option("--start-date", help="Project start date (YYYY-MM-DD)")
    ] = None,
    priority: Annotated[
        int | None,
        typer.Option("--priority", help="Explicit priority (0-100, higher is more urgent)"),
    ] = None,
    route: Annotated[
        str | None, typer.Option("--route", help="Production route to generate tasks from")
    ] = None,
    complexity: Annotated[
        float, typer.Option("--complexity", help="Project complexity (0-100)", min=0, max=100)
    ] = 50,
    as_of: Annotated[
        str | None,
        typer.Option(
            "--as-of",
            help="Simulate from this instant (YYYY-MM-DD or YYYY-MM-DDTHH:MM). Defaults to now",
        ),
    ] = None,
) -> None:
    """Forecast the effect of inserting a hypothetical project."""
    hypothetical = HypotheticalProject(
        name=name,
        client=client,
        due_date=_parse_date_option(due_date, "due-date"),
        start_date=_parse_date_option(start_date, "start-date") if start_date else None,
        priority=priority,
    )
    parsed_as_of = _parse_as_of(as_of)
    config = _load_config(file)
    backlog = _load(file, config.scheduler)

    engine = SchedulingEngine(backlog, _store_for(config), config.scheduler)
    try:
        result = engine.simulate_insertion(
            hypothetical, route_id=route, complexity=complexity, as_of=parsed_as_of
        )
    except SimulationCleanupError as e:
        raise _fail(f"CRITICAL: {e}") from None
    except (FloorschedError, OSError, ValueError) as e:
        raise _fail(str(e)) from None

    _display_simulation_results(result)
    _display_warnings(list(result.warnings))


@app.command()
def completions() -> None:
    """Show the completion forecasts stored by the last schedule run."""
    config = _load_config(None)
    store = _store_for(config)
    try:
        stored = store.load_completions()
    except (OSError, ValueError) as e:
        raise _fail(f"Could not read schedule store {store.path}: {e}") from None

    if not stored:
        typer.echo(f"No completion records in {store.path}")
        return
    typer.echo(f"Completions stored in {store.path}:")
    _display_completions(stored)


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
