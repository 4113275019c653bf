"""Working-calendar resolution for teams.

Turns the configured working hours and the per-team holiday list into
workable intervals. The capacity scheduler never probes minute by minute:
it walks day windows and jumps across non-working gaps.
"""

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from floorsched.logger import get_logger
from floorsched.models import HolidayEntry

from .config import SchedulingConfig

logger = get_logger()

Window = tuple[datetime, datetime]


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


class CalendarResolver:
    """Answers "is this instant workable for team X" and related queries.

    Working windows are ``[start, end)``: a team working 08:00-17:00 can work
    at 16:59 but not at 17:00. Results are cached per (team, day).
    """

    def __init__(
        self,
        config: SchedulingConfig | None = None,
        holidays: Iterable[HolidayEntry] = (),
    ) -> None:
        self.config = config or SchedulingConfig()
        self._holidays: dict[str, set[date]] = {}
        for entry in holidays:
            self._holidays.setdefault(entry.team, set()).add(entry.date)
        self._window_cache: dict[tuple[str, date], list[Window]] = {}

    def is_holiday(self, team: str, day: date) -> bool:
        return day in self._holidays.get(team, ())

    def is_working_day(self, team: str, day: date) -> bool:
        hours = self.config.hours_for(team)
        return day.weekday() in hours.weekdays and not self.is_holiday(team, day)

    def windows(self, team: str, day: date) -> list[Window]:
        """Workable intervals of a day, in order (empty on non-working days)."""
        key = (team, day)
        cached = self._window_cache.get(key)
        if cached is not None:
            return cached

        result: list[Window] = []
        if self.is_working_day(team, day):
            hours = self.config.hours_for(team)
            cursor = datetime.combine(day, hours.start)
            day_end = datetime.combine(day, hours.end)
            for period in sorted(hours.breaks, key=lambda b: b.start):
                break_start = datetime.combine(day, period.start)
                break_end = datetime.combine(day, period.end)
                if break_start > cursor:
                    result.append((cursor, break_start))
                cursor = max(cursor, break_end)
            if cursor < day_end:
                result.append((cursor, day_end))

        self._window_cache[key] = result
        return result

    def is_workable(self, team: str, timestamp: datetime) -> bool:
        """True if the team can work at this instant."""
        return any(start <= timestamp < end for start, end in self.windows(team, timestamp.date()))

    def next_workable(self, team: str, timestamp: datetime, limit: datetime) -> datetime | None:
        """First workable instant at or after ``timestamp``, or None past ``limit``."""
        day = timestamp.date()
        while day <= limit.date():
            for start, end in self.windows(team, day):
                if timestamp < end:
                    candidate = max(timestamp, start)
                    return candidate if candidate <= limit else None
            day += timedelta(days=1)
        return None

    def add_working_minutes(
        self, team: str, start: datetime, minutes: int, limit: datetime
    ) -> datetime | None:
        """Instant at which ``minutes`` of workable time starting at ``start`` are used up.

        Walks forward through the team's windows, skipping nights, weekends,
        breaks and holidays. Returns None if the work does not fit before
        ``limit``.
        """
        if minutes <= 0:
            return start

        remaining = minutes
        current = start
        day = current.date()
        while day <= limit.date():
            for window_start, window_end in self.windows(team, day):
                if current >= window_end:
                    continue
                segment_start = max(current, window_start)
                available = _minutes(window_end - segment_start)
                if available >= remaining:
                    end = segment_start + timedelta(minutes=remaining)
                    return end if end <= limit else None
                remaining -= available
                current = window_end
            day += timedelta(days=1)
        return None

    def worked_intervals(self, team: str, start: datetime, end: datetime) -> list[Window]:
        """Workable sub-intervals of the wall-clock span ``[start, end)``."""
        result: list[Window] = []
        day = start.date()
        while day <= end.date():
            for window_start, window_end in self.windows(team, day):
                lo = max(start, window_start)
                hi = min(end, window_end)
                if lo < hi:
                    result.append((lo, hi))
            day += timedelta(days=1)
        return result

    def working_minutes_between(self, team: str, start: datetime, end: datetime) -> int:
        return sum(_minutes(hi - lo) for lo, hi in self.worked_intervals(team, start, end))

    def working_days_between(self, team: str, start: date, end: date) -> int:
        """Signed number of working days in ``[start, end)``.

        Negative when ``end`` is before ``start``: minus the working days in
        ``[end, start)``.
        """
        if end < start:
            return -self.working_days_between(team, end, start)
        count = 0
        day = start
        while day < end:
            if self.is_working_day(team, day):
                count += 1
            day += timedelta(days=1)
        return count
