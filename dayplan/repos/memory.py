"""In-memory repositories for daily schedules and the mutation log."""

from __future__ import annotations

from datetime import date, timedelta

from dayplan.domain.models import (
    DailySchedule,
    DateRange,
    MutationLogEntry,
    WorkingHours,
    default_working_hours,
)


class ScheduleRepository:
    """Dict-backed store of DailySchedule instances, keyed by owner and day."""

    def __init__(self, working_hours: WorkingHours | None = None) -> None:
        self._store: dict[tuple[str, date], DailySchedule] = {}
        self._working_hours = working_hours or default_working_hours()

    def get(self, owner_id: str, day: date) -> DailySchedule | None:
        return self._store.get((owner_id, day))

    def get_or_create(self, owner_id: str, day: date) -> DailySchedule:
        """Return the owner's schedule for a day, creating an empty one if missing."""
        schedule = self._store.get((owner_id, day))
        if schedule is None:
            schedule = DailySchedule(day=day, working_hours=self._working_hours)
            self._store[(owner_id, day)] = schedule
        return schedule

    def list_range(self, owner_id: str, date_range: DateRange) -> list[DailySchedule]:
        """Return one schedule per day of the range, creating missing days."""
        days = (date_range.end - date_range.start).days + 1
        return [
            self.get_or_create(owner_id, date_range.start + timedelta(days=offset))
            for offset in range(days)
        ]

    def save(self, owner_id: str, schedule: DailySchedule) -> None:
        self._store[(owner_id, schedule.day)] = schedule

    def delete(self, owner_id: str, day: date) -> None:
        self._store.pop((owner_id, day), None)


class MutationLogRepository:
    """List-backed store of MutationLogEntry instances."""

    def __init__(self) -> None:
        self._entries: list[MutationLogEntry] = []

    def add(self, entry: MutationLogEntry) -> None:
        self._entries.append(entry)

    def get(self, correlation_id: str) -> MutationLogEntry | None:
        for entry in self._entries:
            if entry.correlation_id == correlation_id:
                return entry
        return None

    def list_for_day(self, owner_id: str, day: date) -> list[MutationLogEntry]:
        return sorted(
            [e for e in self._entries if e.owner_id == owner_id and e.day == day],
            key=lambda e: e.timestamp,
        )
