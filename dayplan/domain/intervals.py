"""Wall-clock time parsing and same-day interval arithmetic.

Times are minute offsets from midnight. Intervals are half-open
``[start, end)``, so touching intervals do not overlap.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dayplan.domain.errors import InvalidInterval, InvalidTimeFormat

LAST_MINUTE = 23 * 60 + 59

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Interval(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0, le=LAST_MINUTE)
    end: int = Field(ge=0, le=LAST_MINUTE)

    @model_validator(mode="after")
    def _end_after_start(self) -> Interval:
        if self.end <= self.start:
            raise ValueError("interval end must be after its start")
        return self

    @property
    def duration(self) -> int:
        return self.end - self.start

    def format(self) -> str:
        return f"{to_time_string(self.start)}-{to_time_string(self.end)}"


def to_offset(value: str) -> int:
    """Convert ``"HH:MM"`` (24h) to minutes after midnight."""
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Expected an HH:MM string, got {value!r}")
    m = _TIME_PATTERN.match(value)
    if not m:
        raise InvalidTimeFormat(f"Invalid time {value!r}, expected HH:MM")
    return int(m.group(1)) * 60 + int(m.group(2))


def to_time_string(offset: int) -> str:
    if not 0 <= offset <= LAST_MINUTE:
        raise InvalidTimeFormat(f"Minute offset out of range: {offset}")
    return f"{offset // 60:02d}:{offset % 60:02d}"


def make_interval(start: str | int, end: str | int) -> Interval:
    """Build an interval from ``HH:MM`` strings or minute offsets.

    Raises ``InvalidInterval`` for zero or negative durations. Overnight
    spans are not supported.
    """
    start_offset = start if isinstance(start, int) else to_offset(start)
    end_offset = end if isinstance(end, int) else to_offset(end)
    for offset in (start_offset, end_offset):
        if not 0 <= offset <= LAST_MINUTE:
            raise InvalidTimeFormat(f"Minute offset out of range: {offset}")
    if end_offset <= start_offset:
        raise InvalidInterval(
            f"End {to_time_string(end_offset)} must be after "
            f"start {to_time_string(start_offset)}"
        )
    return Interval(start=start_offset, end=end_offset)


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def duration_minutes(interval: Interval) -> int:
    return interval.end - interval.start


def overlap_minutes(a: Interval, b: Interval) -> int:
    """Length of the shared part of two intervals, 0 if disjoint."""
    return max(0, min(a.end, b.end) - max(a.start, b.start))


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Union of intervals as a sorted list of disjoint intervals.

    Touching intervals are coalesced.
    """
    merged: list[Interval] = []
    for iv in sorted(intervals, key=lambda i: (i.start, i.end)):
        if merged and iv.start <= merged[-1].end:
            last = merged[-1]
            if iv.end > last.end:
                merged[-1] = Interval(start=last.start, end=iv.end)
            continue
        merged.append(iv)
    return merged


def subtract(base: Interval, busy: Iterable[Interval]) -> list[Interval]:
    """Return the parts of ``base`` not covered by any busy interval."""
    free: list[Interval] = []
    cursor = base.start

    for iv in merge(busy):
        # Busy blocks outside the base window do not matter
        if iv.end <= base.start or iv.start >= base.end:
            continue
        if iv.start > cursor:
            free.append(Interval(start=cursor, end=iv.start))
        cursor = max(cursor, iv.end)

    if cursor < base.end:
        free.append(Interval(start=cursor, end=base.end))
    return free
