"""Workstation timeline tracking."""

import bisect
from dataclasses import dataclass
from datetime import datetime

from floorsched.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class Reservation:
    start: datetime
    end: datetime
    task_id: str


class WorkstationTimeline:
    """Tracks the reservations of a single-occupancy workstation.

    Maintains the invariant that reservations are sorted by start and never
    overlap. The greedy scheduler only appends after the last reservation, so
    ``free_at`` is the earliest instant a new task may start.
    """

    def __init__(self, workstation_id: str, team: str, free_at: datetime | None = None) -> None:
        self.workstation_id = workstation_id
        self.team = team
        self.reservations: list[Reservation] = []
        self._initial_free_at = free_at

    @property
    def free_at(self) -> datetime | None:
        """End of the last reservation (or the initial availability)."""
        if self.reservations:
            return self.reservations[-1].end
        return self._initial_free_at

    def earliest_start(self, ready: datetime) -> datetime:
        free_at = self.free_at
        if free_at is None:
            return ready
        return max(ready, free_at)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """True if ``[start, end)`` intersects an existing reservation."""
        idx = bisect.bisect_right(self.reservations, start, key=lambda r: r.start)
        if idx > 0 and self.reservations[idx - 1].end > start:
            return True
        return idx < len(self.reservations) and self.reservations[idx].start < end

    def reserve(self, start: datetime, end: datetime, task_id: str) -> None:
        """Record a reservation.

        Raises:
            ValueError: If the interval is reversed or overlaps an existing reservation
        """
        if end < start:
            raise ValueError(f"Reservation for {task_id} ends before it starts ({start} > {end})")
        if self.overlaps(start, end):
            raise ValueError(
                f"Reservation for {task_id} on {self.workstation_id} overlaps "
                f"an existing reservation ({start} - {end})"
            )
        idx = bisect.bisect_right(self.reservations, start, key=lambda r: r.start)
        self.reservations.insert(idx, Reservation(start, end, task_id))
        logger.debug(f"      {self.workstation_id}: reserved {start} - {end} for {task_id}")

