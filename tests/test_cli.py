"""Tests for CLI commands."""

import csv
from datetime import datetime
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from floorsched.cli import app

runner = CliRunner()

BACKLOG = Path(__file__).parent / "fixtures" / "workshop_backlog.yaml"
AS_OF = "2024-01-08T08:00"


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run each command away from any floorsched_config.yaml in the checkout."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "schedule.yaml"


class TestScheduleCommand:
    """Test the schedule CLI command."""

    def test_schedule_output(self, store_path: Path) -> None:
        result = runner.invoke(
            app, ["--store", str(store_path), "schedule", str(BACKLOG), "--as-of", AS_OF]
        )

        assert result.exit_code == 0, result.output
        assert "Schedule as of 2024-01-08 08:00:" in result.output
        assert (
            "p-smith-prod-st-cut: ws-saw 2024-01-08 08:00 -> 2024-01-08 09:40 (Kitchen Smith)"
            in result.output
        )
        assert (
            "p-jones-pack: ws-bench 2024-01-08 13:00 -> 2024-01-08 13:30 (Wardrobe Jones)"
            in result.output
        )
        assert (
            "Kitchen Smith [Smith]: on_track, ends 2024-01-08 13:00, due 2024-02-01, "
            "17 working day(s) remaining" in result.output
        )
        assert "Wardrobe Jones [Jones]: on_track, ends 2024-01-08 13:30" in result.output
        assert "Idle time between tasks:" not in result.output

    def test_schedule_persists_to_store(self, store_path: Path) -> None:
        result = runner.invoke(
            app, ["--store", str(store_path), "schedule", str(BACKLOG), "--as-of", AS_OF]
        )

        assert result.exit_code == 0, result.output
        data = yaml.safe_load(store_path.read_text())
        assert data["version"] == 1
        assert len(data["slots"]) == 5
        assert [c["project_id"] for c in data["completions"]] == ["p-smith", "p-jones"]

    def test_no_persist(self, store_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--store",
                str(store_path),
                "schedule",
                str(BACKLOG),
                "--as-of",
                AS_OF,
                "--no-persist",
            ],
        )

        assert result.exit_code == 0, result.output
        assert not store_path.exists()

    def test_csv_export(self, tmp_path: Path, store_path: Path) -> None:
        output = tmp_path / "schedule.csv"

        result = runner.invoke(
            app,
            [
                "--store",
                str(store_path),
                "schedule",
                str(BACKLOG),
                "--as-of",
                AS_OF,
                "--output-csv",
                str(output),
            ],
        )

        assert result.exit_code == 0, result.output
        assert f"Schedule exported to {output}" in result.output
        with output.open() as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 5
        assert rows[0] == {
            "task_id": "p-smith-prod-st-cut",
            "workstation_id": "ws-saw",
            "project_id": "p-smith",
            "project_name": "Kitchen Smith",
            "start": "2024-01-08T08:00:00",
            "end": "2024-01-08T09:40:00",
        }

    def test_invalid_as_of(self, store_path: Path) -> None:
        result = runner.invoke(
            app, ["--store", str(store_path), "schedule", str(BACKLOG), "--as-of", "monday"]
        )

        assert result.exit_code == 1
        assert "Invalid date format 'monday'" in result.output

    def test_as_of_with_utc_offset(self, store_path: Path) -> None:
        """An offset timestamp is converted to local wall-clock time."""
        as_of = datetime(2024, 1, 8, 8, 0).astimezone().isoformat()

        result = runner.invoke(
            app, ["--store", str(store_path), "schedule", str(BACKLOG), "--as-of", as_of]
        )

        assert result.exit_code == 0, result.output
        assert "Schedule as of 2024-01-08 08:00:" in result.output
        assert "p-smith-prod-st-cut: ws-saw 2024-01-08 08:00 -> 2024-01-08 09:40" in result.output

    def test_missing_backlog(self, tmp_path: Path, store_path: Path) -> None:
        result = runner.invoke(
            app, ["--store", str(store_path), "schedule", str(tmp_path / "missing.yaml")]
        )

        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_config_file_changes_threshold(self, tmp_path: Path, store_path: Path) -> None:
        """A larger at-risk threshold turns Wardrobe Jones (8 days of slack) at risk."""
        config_path = tmp_path / "custom_config.yaml"
        config_path.write_text("scheduler:\n  at_risk_threshold_days: 10\n")

        result = runner.invoke(
            app,
            [
                "--config",
                str(config_path),
                "--store",
                str(store_path),
                "schedule",
                str(BACKLOG),
                "--as-of",
                AS_OF,
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Wardrobe Jones [Jones]: at_risk" in result.output
        assert "Kitchen Smith [Smith]: on_track" in result.output

    def test_config_store_path(self, tmp_path: Path) -> None:
        """Without --store the store location comes from the config file."""
        config_path = tmp_path / "floorsched_config.yaml"
        config_path.write_text("store:\n  path: out/stored.yaml\n")

        result = runner.invoke(app, ["schedule", str(BACKLOG), "--as-of", AS_OF])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "out" / "stored.yaml").exists()

    def test_verbose_logging(self, store_path: Path) -> None:
        result = runner.invoke(
            app, ["-v", "1", "--store", str(store_path), "schedule", str(BACKLOG), "--as-of", AS_OF]
        )

        assert result.exit_code == 0, result.output
        assert "Scheduled task p-smith-prod-st-cut on ws-saw" in result.output


class TestSimulateCommand:
    """Test the simulate CLI command."""

    def _simulate(self, store_path: Path, *extra: str):
        return runner.invoke(
            app,
            [
                "--store",
                str(store_path),
                "simulate",
                str(BACKLOG),
                "--name",
                "Rush",
                "--client",
                "Doe",
                "--due-date",
                "2024-01-09",
                "--as-of",
                AS_OF,
                *extra,
            ],
        )

    def test_rush_insertion(self, store_path: Path) -> None:
        result = self._simulate(store_path, "--priority", "100", "--complexity", "100")

        assert result.exit_code == 0, result.output
        assert "New project:" in result.output
        assert "Rush [Doe]: overdue, ends 2024-01-09 09:00" in result.output
        assert "Impacted projects:" in result.output
        assert (
            "Kitchen Smith [Smith]: on_track -> on_track, +1 working day(s) of slack lost"
            in result.output
        )
        assert "Wardrobe Jones [Jones]: on_track -> on_track" in result.output
        assert "Total slots in simulated schedule: 8" in result.output

    def test_store_holds_real_schedule_after_simulation(self, store_path: Path) -> None:
        result = self._simulate(store_path, "--priority", "100", "--complexity", "100")

        assert result.exit_code == 0, result.output
        data = yaml.safe_load(store_path.read_text())
        assert {slot["project_id"] for slot in data["slots"]} == {"p-smith", "p-jones"}
        assert "sim-" not in store_path.read_text()

    def test_low_priority_has_no_impact(self, store_path: Path) -> None:
        result = self._simulate(store_path, "--complexity", "10")

        assert result.exit_code == 0, result.output
        assert "No existing project is impacted." in result.output

    def test_unknown_route_warning(self, store_path: Path) -> None:
        result = self._simulate(store_path, "--route", "r-missing")

        assert result.exit_code == 0, result.output
        assert "Warnings:" in result.output
        assert "Unknown route 'r-missing'" in result.output

    def test_known_route(self, store_path: Path) -> None:
        """The basic route skips edging: 2 generated tasks plus 5 real ones."""
        result = self._simulate(store_path, "--route", "r-basic")

        assert result.exit_code == 0, result.output
        assert "Total slots in simulated schedule: 7" in result.output

    def test_invalid_start_date(self, store_path: Path) -> None:
        result = self._simulate(store_path, "--start-date", "soon")

        assert result.exit_code == 1
        assert "Invalid date format for --start-date 'soon'" in result.output

    def test_valid_start_date(self, store_path: Path) -> None:
        result = self._simulate(store_path, "--start-date", "2024-01-08")

        assert result.exit_code == 0, result.output
        assert "New project:" in result.output

    def test_invalid_due_date(self, store_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--store",
                str(store_path),
                "simulate",
                str(BACKLOG),
                "--name",
                "Rush",
                "--due-date",
                "next week",
            ],
        )

        assert result.exit_code == 1
        assert "Invalid date format for --due-date 'next week'" in result.output


class TestCompletionsCommand:
    """Test the completions CLI command."""

    def test_empty_store(self, store_path: Path) -> None:
        result = runner.invoke(app, ["--store", str(store_path), "completions"])

        assert result.exit_code == 0, result.output
        assert f"No completion records in {store_path}" in result.output

    def test_after_schedule(self, store_path: Path) -> None:
        runner.invoke(app, ["--store", str(store_path), "schedule", str(BACKLOG), "--as-of", AS_OF])

        result = runner.invoke(app, ["--store", str(store_path), "completions"])

        assert result.exit_code == 0, result.output
        assert f"Completions stored in {store_path}:" in result.output
        assert "Kitchen Smith [Smith]: on_track, ends 2024-01-08 13:00" in result.output

    def test_corrupt_store(self, store_path: Path) -> None:
        store_path.write_text("version: 7\n")

        result = runner.invoke(app, ["--store", str(store_path), "completions"])

        assert result.exit_code == 1
        assert "Could not read schedule store" in result.output
