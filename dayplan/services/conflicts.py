"""Service for detecting scheduling conflicts within one day."""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from itertools import combinations

from dayplan.config import DEFAULT_CONFIG, EngineConfig
from dayplan.domain.errors import UnknownScheduleItem
from dayplan.domain.intervals import (
    Interval,
    merge,
    overlap_minutes,
    overlaps,
    to_time_string,
)
from dayplan.domain.models import (
    PRIORITY_RANK,
    TASK_TYPES,
    ConflictResolution,
    ConflictType,
    DailySchedule,
    ResolutionType,
    ScheduleConflict,
    ScheduleItem,
    ScheduleItemStatus,
    Severity,
    TimeSlot,
)
from dayplan.services.suggestions import free_intervals


@dataclass
class _Group:
    """Items sharing a stretch where more than two of them are open at once."""

    items: list[ScheduleItem] = field(default_factory=list)
    peak: int = 0


def detect_conflicts(
    schedule: DailySchedule,
    config: EngineConfig | None = None,
) -> list[ScheduleConflict]:
    """Return overlap, overbooked and deadline conflicts for a day.

    Items are swept in start order while a min-heap holds the items still
    open at the current start. While more than two items are open at once
    they form an overbooked group, reported as a single ``overbooked``
    conflict that absorbs the overlaps among its members. The group closes
    as soon as concurrency falls back to two or fewer; any other overlapping
    pair is reported on its own. Deadline conflicts follow the sweep results.

    Output order depends only on the input, so repeated calls on an
    unchanged schedule return identical lists.
    """
    config = config or DEFAULT_CONFIG
    found: list[tuple[ScheduleItem, ScheduleItem] | _Group] = []
    open_items: list[tuple[int, int, ScheduleItem]] = []
    group: _Group | None = None

    for order, item in enumerate(schedule.items):
        current = item.interval
        dipped = _release_finished(open_items, current.start)
        if dipped or len(open_items) < 2:
            group = None

        others = [entry[2] for entry in sorted(open_items, key=lambda entry: entry[1])]
        if len(others) >= 2:
            if group is None:
                members = {other.id for other in others}
                found = [entry for entry in found if not _within(entry, members)]
                group = _Group(items=list(others))
                found.append(group)
            group.items.append(item)
            group.peak = max(group.peak, len(others) + 1)
        else:
            found.extend((other, item) for other in others)
        heapq.heappush(open_items, (current.end, order, item))

    conflicts = []
    for entry in found:
        if isinstance(entry, _Group):
            conflicts.append(_overbooked_conflict(entry, config))
        else:
            conflicts.append(_overlap_conflict(*entry, config))
    conflicts.extend(_deadline_conflicts(schedule))
    return conflicts


def _release_finished(open_items: list[tuple[int, int, ScheduleItem]], start: int) -> bool:
    """Pop the items that ended by ``start``.

    Returns True when, between two of those ends or before ``start``, no more
    than two items were left open.
    """
    ends = []
    while open_items and open_items[0][0] <= start:
        ends.append(heapq.heappop(open_items)[0])

    remaining = len(open_items) + len(ends)
    dipped = False
    for end, following in zip(ends, [*ends[1:], start]):
        remaining -= 1
        if end < following and remaining <= 2:
            dipped = True
    return dipped


def _within(found: tuple[ScheduleItem, ScheduleItem] | _Group, member_ids: set[str]) -> bool:
    if isinstance(found, _Group):
        return False
    a, b = found
    return a.id in member_ids and b.id in member_ids


def classify_severity(
    items: list[ScheduleItem],
    overlapped_minutes: int,
    config: EngineConfig | None = None,
) -> Severity:
    """Severity from how much of the shortest item is lost and the priority mix."""
    config = config or DEFAULT_CONFIG
    shortest = min(item.duration for item in items)
    priorities = {item.priority for item in items}

    if overlapped_minutes > config.overlap_high_ratio * shortest:
        return Severity.HIGH
    if priorities & config.high_severity_priorities:
        return Severity.HIGH
    if priorities & config.medium_severity_priorities:
        return Severity.MEDIUM
    return Severity.LOW


def _overlap_conflict(
    a: ScheduleItem, b: ScheduleItem, config: EngineConfig
) -> ScheduleConflict:
    shared = overlap_minutes(a.interval, b.interval)
    window = _shared_window(a.interval, b.interval)
    return ScheduleConflict(
        id=f"overlap-{a.id}-{b.id}",
        type=ConflictType.OVERLAP,
        items=[a.id, b.id],
        message=(
            f'"{a.title}" and "{b.title}" overlap by {shared} minutes '
            f"({window.format()})"
        ),
        severity=classify_severity([a, b], shared, config),
        overlap_minutes=shared,
    )


def _overbooked_conflict(group: _Group, config: EngineConfig) -> ScheduleConflict:
    shared_windows = merge(
        _shared_window(a.interval, b.interval)
        for a, b in combinations(group.items, 2)
        if overlaps(a.interval, b.interval)
    )
    shared = sum(w.duration for w in shared_windows)
    start = min(item.interval.start for item in group.items)
    end = max(item.interval.end for item in group.items)
    ids = [item.id for item in group.items]

    return ScheduleConflict(
        id="overbooked-" + "-".join(ids),
        type=ConflictType.OVERBOOKED,
        items=ids,
        message=(
            f"{len(ids)} items are booked at the same time between "
            f"{to_time_string(start)} and {to_time_string(end)} "
            f"(up to {group.peak} at once)"
        ),
        severity=classify_severity(group.items, shared, config),
        overlap_minutes=shared,
    )


def _shared_window(a: Interval, b: Interval) -> Interval:
    return Interval(start=max(a.start, b.start), end=min(a.end, b.end))


def _deadline_conflicts(schedule: DailySchedule) -> list[ScheduleConflict]:
    conflicts = []
    for item in schedule.items:
        if item.type not in TASK_TYPES or item.due_date is None:
            continue
        if item.status == ScheduleItemStatus.COMPLETED:
            continue
        if item.due_date < schedule.day:
            conflicts.append(
                ScheduleConflict(
                    id=f"deadline-{item.id}",
                    type=ConflictType.DEADLINE,
                    items=[item.id],
                    message=(
                        f'"{item.title}" is scheduled on {schedule.day.isoformat()} '
                        f"but was due {item.due_date.isoformat()}"
                    ),
                    severity=Severity.HIGH,
                )
            )
    return conflicts


# ---------------------------------------------------------------------------
# Resolution proposals
# ---------------------------------------------------------------------------


def propose_resolutions(
    schedule: DailySchedule,
    conflict: ScheduleConflict,
) -> list[ConflictResolution]:
    """Suggest how to clear a conflict without touching locked items.

    Locked items always stay. When none of the involved items is locked, the
    most important one (priority, then start order) stays. Every other item
    is moved into the earliest free gap of the day that fits it, or proposed
    for cancellation when no gap fits.
    """
    involved = []
    for item_id in conflict.items:
        item = schedule.get(item_id)
        if item is None:
            raise UnknownScheduleItem(item_id)
        involved.append(item)

    if conflict.type == ConflictType.DEADLINE:
        return [
            ConflictResolution(
                type=ResolutionType.CANCEL,
                target_item_id=item.id,
                description=f'Cancel "{item.title}" or move it before its due date',
            )
            for item in involved
            if not item.is_locked
        ]

    staying = {item.id for item in involved if item.is_locked}
    if not staying:
        position = {item.id: idx for idx, item in enumerate(schedule.items)}
        keeper = min(involved, key=lambda i: (PRIORITY_RANK[i.priority], position[i.id]))
        staying.add(keeper.id)

    movable = [item for item in involved if item.id not in staying]
    moving_ids = {item.id for item in movable}
    claimed: list[Interval] = []
    resolutions = []

    for item in movable:
        gaps = free_intervals(schedule, exclude_ids=moving_ids, extra_busy=claimed)
        gap = next((g for g in gaps if g.duration >= item.duration), None)
        if gap is None:
            resolutions.append(
                ConflictResolution(
                    type=ResolutionType.CANCEL,
                    target_item_id=item.id,
                    description=f'No free time left today for "{item.title}"',
                )
            )
            continue

        target = Interval(start=gap.start, end=gap.start + item.duration)
        claimed.append(target)
        resolutions.append(
            ConflictResolution(
                type=ResolutionType.MOVE,
                target_item_id=item.id,
                new_time_slot=TimeSlot(
                    day=schedule.day,
                    start_time=to_time_string(target.start),
                    end_time=to_time_string(target.end),
                ),
                description=f'Move "{item.title}" to {target.format()}',
            )
        )
    return resolutions
