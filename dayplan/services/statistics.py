"""Service for utilization and completion statistics of a day."""

from __future__ import annotations

from dayplan.domain.models import (
    PRODUCTIVE_TYPES,
    TASK_TYPES,
    DailySchedule,
    ScheduleItemStatus,
    ScheduleItemType,
    ScheduleStatistics,
)


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def compute_statistics(schedule: DailySchedule) -> ScheduleStatistics:
    """Aggregate a day's schedule into totals and rates.

    Rates are kept as floats; ``utilization_percent`` and
    ``completion_percent`` carry the rounded values for display.
    """
    items = schedule.items
    tasks = [i for i in items if i.type in TASK_TYPES]
    completed = [i for i in tasks if i.status == ScheduleItemStatus.COMPLETED]

    total_minutes = sum(i.duration for i in items)
    productive_minutes = sum(i.duration for i in items if i.type in PRODUCTIVE_TYPES)
    meeting_minutes = sum(i.duration for i in items if i.type == ScheduleItemType.MEETING)
    focus_minutes = sum(i.duration for i in items if i.type == ScheduleItemType.FOCUS)

    available = schedule.working_hours.total_available
    nominal = schedule.working_hours.interval.duration
    utilization = _clamp_percent(productive_minutes / available * 100) if available else 0.0
    completion = len(completed) / len(tasks) * 100 if tasks else 0.0

    return ScheduleStatistics(
        day=schedule.day,
        total_tasks=len(tasks),
        completed_tasks=len(completed),
        total_hours=total_minutes / 60,
        productive_hours=productive_minutes / 60,
        break_hours=schedule.working_hours.break_minutes / 60,
        meeting_minutes=meeting_minutes,
        focus_minutes=focus_minutes,
        utilization_rate=utilization,
        completion_rate=_clamp_percent(completion),
        overtime_hours=max(0.0, (total_minutes - nominal) / 60),
        total_estimated_minutes=sum(i.estimated_minutes or 0 for i in items),
        total_actual_minutes=sum(i.actual_minutes or 0 for i in items),
    )
