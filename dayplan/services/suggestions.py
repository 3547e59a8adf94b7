"""Service for finding and ranking free time for an unscheduled item."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import date

from dayplan.config import DEFAULT_CONFIG, EngineConfig
from dayplan.domain.intervals import Interval, subtract, to_time_string
from dayplan.domain.models import (
    Availability,
    DailySchedule,
    Priority,
    ScheduleSuggestion,
    SuggestionRequest,
    TimeSlot,
)

PRIORITY_WEIGHT = {
    Priority.CRITICAL: 1.0,
    Priority.URGENT: 0.85,
    Priority.HIGH: 0.7,
    Priority.MEDIUM: 0.5,
    Priority.LOW: 0.3,
}

FACTOR_FIT = "free-capacity fit"
FACTOR_URGENCY = "priority urgency"
FACTOR_DUE_DATE = "due-date proximity"
FACTOR_DAY = "day proximity"


def free_intervals(
    schedule: DailySchedule,
    exclude_ids: Collection[str] = (),
    extra_busy: Iterable[Interval] = (),
) -> list[Interval]:
    """Working hours minus every item and break of the day.

    Locked and unlocked items both count as busy, so nothing built on these
    gaps can collide with a locked item or leave working hours.
    """
    busy = [item.interval for item in schedule.items if item.id not in exclude_ids]
    busy.extend(schedule.working_hours.break_intervals)
    busy.extend(extra_busy)
    return subtract(schedule.working_hours.interval, busy)


def urgency_score(candidate: SuggestionRequest, day: date) -> float:
    """Priority weight, blended with due-date closeness when there is one.

    A slot after the due date earns no due-date credit.
    """
    weight = PRIORITY_WEIGHT[candidate.priority]
    if candidate.due_date is None:
        return weight
    days_left = (candidate.due_date - day).days
    due_score = 0.0 if days_left < 0 else 1 / (1 + days_left)
    return (weight + due_score) / 2


def generate_suggestions(
    candidate: SuggestionRequest,
    schedules: list[DailySchedule],
    *,
    today: date | None = None,
    config: EngineConfig | None = None,
) -> list[ScheduleSuggestion]:
    """
    Rank free slots across the given days for a candidate item.

    Each free gap long enough for the item yields one slot at the start of
    the gap. Slots are scored by how tightly the item fills the gap, how
    urgent it is, and how soon the day is. ``today`` defaults to the
    earliest day given; days before it are skipped.

    Returns an empty list when no gap is long enough.
    """
    config = config or DEFAULT_CONFIG
    if not schedules:
        return []
    today = today or min(s.day for s in schedules)
    needed = candidate.duration_minutes

    scored: list[tuple[float, date, int, int]] = []
    for schedule in sorted(schedules, key=lambda s: s.day):
        if schedule.day < today:
            continue
        for gap in free_intervals(schedule):
            if gap.duration < needed:
                continue
            fit = needed / gap.duration
            proximity = 1 / (1 + (schedule.day - today).days)
            score = (
                config.fit_weight * fit
                + config.urgency_weight * urgency_score(candidate, schedule.day)
                + config.proximity_weight * proximity
            )
            scored.append((min(1.0, score), schedule.day, gap.start, gap.duration))

    if not scored:
        return []

    scored.sort(key=lambda entry: (-entry[0], entry[1], entry[2]))
    top = scored[: config.max_suggested_slots]
    slots = [
        TimeSlot(
            day=day,
            start_time=to_time_string(start),
            end_time=to_time_string(start + needed),
            availability=Availability.FREE,
            score=round(score, 4),
        )
        for score, day, start, _ in top
    ]

    best_score, best_day, _, best_gap = top[0]
    return [
        ScheduleSuggestion(
            id=f"suggestion-{candidate.item_id}",
            item_id=candidate.item_id,
            suggested_slots=slots,
            reason=(
                f"{best_day.isoformat()} {slots[0].start_time}-{slots[0].end_time} "
                f"fits {needed} of {best_gap} free minutes for a "
                f"{candidate.priority} priority item"
            ),
            confidence=round(best_score, 2),
            factors=_factors(candidate, config),
        )
    ]


def _factors(candidate: SuggestionRequest, config: EngineConfig) -> list[str]:
    factors = []
    if config.fit_weight:
        factors.append(FACTOR_FIT)
    if config.urgency_weight:
        factors.append(FACTOR_URGENCY)
        if candidate.due_date is not None:
            factors.append(FACTOR_DUE_DATE)
    if config.proximity_weight:
        factors.append(FACTOR_DAY)
    return factors
