"""Errors raised by the schedule engine.

All of them are caller errors: the engine fails fast and never retries.
"""

from __future__ import annotations


class ScheduleEngineError(ValueError):
    """Base class for invalid input handed to the engine."""


class InvalidTimeFormat(ScheduleEngineError):
    """A wall-clock time is not a valid ``HH:MM`` string or minute offset."""


class InvalidInterval(ScheduleEngineError):
    """An interval whose end is not after its start."""


class InvalidRecurrencePattern(ScheduleEngineError):
    """A recurring pattern that cannot be expanded."""


class UnknownScheduleItem(ScheduleEngineError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Schedule item not found: {item_id}")
        self.item_id = item_id


class DuplicateScheduleItem(ScheduleEngineError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Schedule item already exists: {item_id}")
        self.item_id = item_id
