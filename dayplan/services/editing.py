"""Pure edits of a day's schedule.

Every function returns a new ``DailySchedule``; building it re-sorts the
items, so the start-order invariant holds after any edit.
"""

from __future__ import annotations

from dayplan.domain.errors import DuplicateScheduleItem, InvalidInterval, UnknownScheduleItem
from dayplan.domain.intervals import LAST_MINUTE, make_interval, to_offset, to_time_string
from dayplan.domain.models import (
    DailySchedule,
    DragType,
    MutationAction,
    ScheduleDragData,
    ScheduleItem,
    ScheduleItemUpdate,
    ScheduleMutation,
    WorkingHours,
)


def add_item(schedule: DailySchedule, item: ScheduleItem) -> DailySchedule:
    if schedule.get(item.id) is not None:
        raise DuplicateScheduleItem(item.id)
    return _rebuild(schedule, [*schedule.items, item])


def update_item(
    schedule: DailySchedule,
    item_id: str,
    changes: ScheduleItemUpdate,
) -> DailySchedule:
    """Apply the fields set on ``changes`` to one item.

    Locked items can still be edited here: the lock only keeps automated
    placement away from them.
    """
    item = _require(schedule, item_id)
    return _replace(schedule, _revise(item, changes))


def remove_item(schedule: DailySchedule, item_id: str) -> DailySchedule:
    _require(schedule, item_id)
    return _rebuild(schedule, [i for i in schedule.items if i.id != item_id])


def bulk_update_items(
    schedule: DailySchedule,
    item_ids: list[str],
    changes: ScheduleItemUpdate,
) -> DailySchedule:
    """Apply the same changes to several items; all ids must exist."""
    revised = {item_id: _revise(_require(schedule, item_id), changes) for item_id in item_ids}
    return _rebuild(schedule, [revised.get(i.id, i) for i in schedule.items])


def apply_drag(schedule: DailySchedule, drag: ScheduleDragData) -> DailySchedule:
    """Apply a drop from the time grid.

    ``move`` keeps the item's duration unless an end time is given,
    ``resize-start`` and ``resize-end`` change one edge only. The result
    must be a valid interval within the same day.
    """
    item = _require(schedule, drag.item_id)
    current = item.interval

    if drag.drag_type == DragType.MOVE:
        start = to_offset(drag.start_time)
        end = to_offset(drag.end_time) if drag.end_time else start + current.duration
        if end > LAST_MINUTE:
            raise InvalidInterval(
                f'Moving "{item.title}" to {drag.start_time} runs past the end of the day'
            )
    elif drag.drag_type == DragType.RESIZE_START:
        start, end = to_offset(drag.start_time), current.end
    else:
        start, end = current.start, to_offset(drag.end_time)

    moved = make_interval(start, end)
    return _replace(
        schedule,
        item.model_copy(
            update={
                "start_time": to_time_string(moved.start),
                "end_time": to_time_string(moved.end),
            }
        ),
    )


def set_working_hours(schedule: DailySchedule, working_hours: WorkingHours) -> DailySchedule:
    """Replace the day's working hours; items are kept as they are."""
    return DailySchedule(day=schedule.day, working_hours=working_hours, items=schedule.items)


def apply_mutation(schedule: DailySchedule, mutation: ScheduleMutation) -> DailySchedule:
    if mutation.action == MutationAction.CREATE:
        return add_item(schedule, mutation.item)
    if mutation.action == MutationAction.UPDATE:
        return update_item(schedule, mutation.item_id, mutation.changes)
    if mutation.action == MutationAction.DELETE:
        return remove_item(schedule, mutation.item_id)
    if mutation.action == MutationAction.MOVE:
        return apply_drag(schedule, mutation.drag)
    if mutation.action == MutationAction.BULK:
        return bulk_update_items(schedule, mutation.item_ids, mutation.changes)
    return set_working_hours(schedule, mutation.working_hours)


def _require(schedule: DailySchedule, item_id: str) -> ScheduleItem:
    item = schedule.get(item_id)
    if item is None:
        raise UnknownScheduleItem(item_id)
    return item


def _revise(item: ScheduleItem, changes: ScheduleItemUpdate) -> ScheduleItem:
    values = changes.model_dump(exclude_unset=True)
    # Surface bad times as engine errors rather than pydantic ones
    make_interval(
        values.get("start_time") or item.start_time,
        values.get("end_time") or item.end_time,
    )
    data = item.model_dump()
    data.update(values)
    return ScheduleItem.model_validate(data)


def _replace(schedule: DailySchedule, updated: ScheduleItem) -> DailySchedule:
    return _rebuild(schedule, [updated if i.id == updated.id else i for i in schedule.items])


def _rebuild(schedule: DailySchedule, items: list[ScheduleItem]) -> DailySchedule:
    return DailySchedule(day=schedule.day, working_hours=schedule.working_hours, items=items)
