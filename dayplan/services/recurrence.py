"""Service for expanding recurring patterns into dated schedule items."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date, datetime, time
from itertools import takewhile

from dateutil.rrule import DAILY, FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, rrule

from dayplan.domain.errors import InvalidRecurrencePattern
from dayplan.domain.models import (
    DateRange,
    Frequency,
    RecurringPattern,
    ScheduleItem,
    ScheduleItemStatus,
)

# Indexed the way patterns number weekdays: 0 = Sunday
_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)

_FREQ = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
}

StepFunction = Callable[[date], date]


def expand_recurrence(
    pattern: RecurringPattern,
    anchor: ScheduleItem,
    date_range: DateRange,
    step: StepFunction | None = None,
) -> Iterator[ScheduleItem]:
    """Lazily yield the occurrences of ``anchor`` inside ``date_range``.

    The series starts on the anchor's day and stops at the earliest of the
    pattern's end date, its occurrence count and the range end. Dates listed
    in ``exceptions`` are skipped but still count towards ``occurrences``.

    ``custom`` patterns need a ``step`` callable mapping an occurrence date
    to the next one; it is applied ``interval`` times per occurrence.

    The pattern is validated before the iterator is returned.
    """
    validate_pattern(pattern, step)

    until = date_range.end
    if pattern.end_date is not None:
        until = min(until, pattern.end_date)

    if pattern.frequency == Frequency.CUSTOM:
        dates = _stepped_dates(anchor.day, step, pattern.interval, pattern.occurrences)
    else:
        dates = _rule_dates(pattern, anchor.day, until)

    skipped = set(pattern.exceptions)
    return (
        _occurrence(anchor, d)
        for d in takewhile(lambda d: d <= until, dates)
        if d >= date_range.start and d not in skipped
    )


def validate_pattern(pattern: RecurringPattern, step: StepFunction | None = None) -> None:
    if pattern.interval <= 0:
        raise InvalidRecurrencePattern(f"interval must be positive, got {pattern.interval}")
    if pattern.occurrences is not None and pattern.occurrences <= 0:
        raise InvalidRecurrencePattern(
            f"occurrences must be positive, got {pattern.occurrences}"
        )
    if pattern.days_of_week and any(not 0 <= d <= 6 for d in pattern.days_of_week):
        raise InvalidRecurrencePattern(
            f"days_of_week must be between 0 (Sunday) and 6, got {pattern.days_of_week}"
        )
    if pattern.day_of_month is not None and not 1 <= pattern.day_of_month <= 31:
        raise InvalidRecurrencePattern(
            f"day_of_month must be between 1 and 31, got {pattern.day_of_month}"
        )
    if pattern.frequency == Frequency.CUSTOM and step is None:
        raise InvalidRecurrencePattern("custom frequency requires a step function")


def _rule_dates(pattern: RecurringPattern, start: date, until: date) -> Iterator[date]:
    kwargs: dict = {
        "dtstart": datetime.combine(start, time()),
        "interval": pattern.interval,
    }
    # dateutil rejects count together with until; the caller cuts at until
    if pattern.occurrences is not None:
        kwargs["count"] = pattern.occurrences
    else:
        kwargs["until"] = datetime.combine(until, time())

    if pattern.frequency == Frequency.WEEKLY and pattern.days_of_week:
        kwargs["byweekday"] = [_WEEKDAYS[d] for d in sorted(set(pattern.days_of_week))]
    if pattern.frequency == Frequency.MONTHLY and pattern.day_of_month is not None:
        kwargs["bymonthday"] = pattern.day_of_month

    for dt in rrule(_FREQ[pattern.frequency], **kwargs):
        yield dt.date()


def _stepped_dates(
    start: date,
    step: StepFunction,
    interval: int,
    count: int | None,
) -> Iterator[date]:
    current = start
    produced = 0
    while count is None or produced < count:
        yield current
        produced += 1
        following = current
        for _ in range(interval):
            following = step(following)
        if following <= current:
            raise InvalidRecurrencePattern(
                f"custom step must move forward, got {following} after {current}"
            )
        current = following


def _occurrence(anchor: ScheduleItem, day: date) -> ScheduleItem:
    return anchor.model_copy(
        update={
            "id": f"{anchor.id}-{day.strftime('%Y%m%d')}",
            "day": day,
            "parent_id": anchor.id,
            "recurring_pattern": None,
            "status": ScheduleItemStatus.PLANNED,
            "completion_rate": 0,
            "actual_minutes": None,
        }
    )
