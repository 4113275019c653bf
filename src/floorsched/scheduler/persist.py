"""Schedule persistence.

The store is the only component that advances shared state. ``persist``
replaces every stored slot of the projects present in its input, plus those of
any project named in ``project_ids``, and leaves other projects untouched, so
running it twice with the same arguments changes nothing.
"""

from collections.abc import Collection
from datetime import date, datetime
from pathlib import Path
from typing import Any, Protocol, cast

import yaml

from floorsched.logger import get_logger

from .core import CompletionStatus, ProjectCompletionInfo, ScheduleSlot

logger = get_logger()

SCHEDULE_FILE_VERSION = 1


class ScheduleStore(Protocol):
    """Storage for computed slots and completion forecasts."""

    def persist(self, slots: list[ScheduleSlot], project_ids: Collection[str] = ()) -> None:
        """Replace the stored slots of every project covered by ``slots`` or ``project_ids``."""
        ...

    def load_slots(self) -> list[ScheduleSlot]:
        ...

    def persist_completions(self, completions: list[ProjectCompletionInfo]) -> None:
        """Replace all stored completion records."""
        ...

    def load_completions(self) -> list[ProjectCompletionInfo]:
        ...


def slot_sort_key(slot: ScheduleSlot) -> tuple[datetime, str, str]:
    return (slot.start, slot.workstation_id, slot.task_id)


def merge_slots(
    existing: list[ScheduleSlot], slots: list[ScheduleSlot], project_ids: Collection[str] = ()
) -> list[ScheduleSlot]:
    """Upsert ``slots`` into ``existing`` by task id, dropping stale slots of covered projects.

    A project is covered when it has a slot in ``slots`` or is listed in ``project_ids``;
    listing a project that produced no slots clears what was stored for it.
    """
    covered = {slot.project_id for slot in slots} | set(project_ids)
    merged = {slot.task_id: slot for slot in existing if slot.project_id not in covered}
    for slot in slots:
        merged[slot.task_id] = slot
    return sorted(merged.values(), key=slot_sort_key)


class InMemoryScheduleStore:
    """Schedule store kept in process memory."""

    def __init__(self) -> None:
        self._slots: list[ScheduleSlot] = []
        self._completions: list[ProjectCompletionInfo] = []

    def persist(self, slots: list[ScheduleSlot], project_ids: Collection[str] = ()) -> None:
        self._slots = merge_slots(self._slots, slots, project_ids)
        logger.changes(f"Persisted {len(slots)} slot(s)")

    def load_slots(self) -> list[ScheduleSlot]:
        return list(self._slots)

    def persist_completions(self, completions: list[ProjectCompletionInfo]) -> None:
        self._completions = list(completions)
        logger.changes(f"Persisted {len(completions)} completion record(s)")

    def load_completions(self) -> list[ProjectCompletionInfo]:
        return list(self._completions)


def _slot_to_dict(slot: ScheduleSlot) -> dict[str, Any]:
    return {
        "task_id": slot.task_id,
        "workstation_id": slot.workstation_id,
        "project_id": slot.project_id,
        "phase_id": slot.phase_id,
        "start": slot.start.isoformat(),
        "end": slot.end.isoformat(),
    }


def _completion_to_dict(info: ProjectCompletionInfo) -> dict[str, Any]:
    end = info.last_production_step_end
    return {
        "project_id": info.project_id,
        "project_name": info.project_name,
        "client": info.client,
        "due_date": info.due_date.isoformat(),
        "last_production_step_end": end.isoformat() if end is not None else None,
        "days_remaining": info.days_remaining,
        "status": info.status.value,
        "incomplete": info.incomplete,
    }


def _parse_datetime(value: Any, what: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise ValueError(f"Invalid timestamp for {what}: {e}") from e


def _parse_date(value: Any, what: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValueError(f"Invalid date for {what}: {e}") from e


def _slot_from_dict(data: dict[str, Any]) -> ScheduleSlot:
    try:
        task_id = str(data["task_id"])
        return ScheduleSlot(
            task_id=task_id,
            workstation_id=str(data["workstation_id"]),
            start=_parse_datetime(data["start"], f"slot '{task_id}' start"),
            end=_parse_datetime(data["end"], f"slot '{task_id}' end"),
            project_id=str(data["project_id"]),
            phase_id=str(data["phase_id"]),
        )
    except KeyError as e:
        raise ValueError(f"Schedule slot missing field {e}") from e


def _completion_from_dict(data: dict[str, Any]) -> ProjectCompletionInfo:
    try:
        project_id = str(data["project_id"])
        end = data.get("last_production_step_end")
        return ProjectCompletionInfo(
            project_id=project_id,
            project_name=str(data["project_name"]),
            client=str(data.get("client", "")),
            due_date=_parse_date(data["due_date"], f"completion '{project_id}'"),
            last_production_step_end=(
                _parse_datetime(end, f"completion '{project_id}'") if end is not None else None
            ),
            days_remaining=int(data["days_remaining"]),
            status=CompletionStatus(data["status"]),
            incomplete=bool(data.get("incomplete", False)),
        )
    except KeyError as e:
        raise ValueError(f"Completion record missing field {e}") from e


class YamlScheduleStore:
    """Schedule store backed by a versioned YAML file.

    The file is read on every call and rewritten on every persist, so several
    engine runs (or a run and the CLI) see each other's writes.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> tuple[list[ScheduleSlot], list[ProjectCompletionInfo]]:
        if not self.path.exists():
            return [], []

        with self.path.open() as f:
            raw_data: Any = yaml.safe_load(f)

        if raw_data is None:
            return [], []
        if not isinstance(raw_data, dict):
            raise ValueError(f"Invalid schedule file format: expected dict, got {type(raw_data)}")

        data = cast(dict[str, Any], raw_data)
        version = data.get("version")
        if version != SCHEDULE_FILE_VERSION:
            raise ValueError(
                f"Unsupported schedule file version {version}, expected {SCHEDULE_FILE_VERSION}"
            )

        raw_slots = data.get("slots") or []
        raw_completions = data.get("completions") or []
        if not isinstance(raw_slots, list) or not isinstance(raw_completions, list):
            raise ValueError("Schedule file 'slots' and 'completions' must be lists")

        slots = [_slot_from_dict(cast(dict[str, Any], item)) for item in raw_slots]
        completions = [
            _completion_from_dict(cast(dict[str, Any], item)) for item in raw_completions
        ]
        return slots, completions

    def _write(
        self, slots: list[ScheduleSlot], completions: list[ProjectCompletionInfo]
    ) -> None:
        output: dict[str, Any] = {
            "version": SCHEDULE_FILE_VERSION,
            "slots": [_slot_to_dict(slot) for slot in slots],
            "completions": [_completion_to_dict(info) for info in completions],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w") as f:
            yaml.safe_dump(output, f, default_flow_style=False, sort_keys=False)

    def persist(self, slots: list[ScheduleSlot], project_ids: Collection[str] = ()) -> None:
        existing, completions = self._read()
        self._write(merge_slots(existing, slots, project_ids), completions)
        logger.changes(f"Persisted {len(slots)} slot(s) to {self.path}")

    def load_slots(self) -> list[ScheduleSlot]:
        return self._read()[0]

    def persist_completions(self, completions: list[ProjectCompletionInfo]) -> None:
        slots, _ = self._read()
        self._write(slots, list(completions))
        logger.changes(f"Persisted {len(completions)} completion record(s) to {self.path}")

    def load_completions(self) -> list[ProjectCompletionInfo]:
        return self._read()[1]
