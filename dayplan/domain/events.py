"""Command and result messages for schedule mutations.

A mutation travels as a ``ScheduleMutationRequested`` command and comes back
as exactly one applied or rejected result carrying the same correlation id.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from dayplan.domain.models import (
    DailySchedule,
    ScheduleConflict,
    ScheduleMutation,
    ScheduleStatistics,
)


class ScheduleMutationRequested(BaseModel):
    """Fired when a client wants to change one day's schedule."""

    correlation_id: str
    owner_id: str
    day: date
    mutation: ScheduleMutation


class ScheduleMutationApplied(BaseModel):
    """Fired with the authoritative schedule after a mutation was stored."""

    correlation_id: str
    owner_id: str
    day: date
    schedule: DailySchedule
    conflicts: list[ScheduleConflict]
    statistics: ScheduleStatistics


class ScheduleMutationRejected(BaseModel):
    """Fired when the engine refused a mutation; nothing was stored."""

    correlation_id: str
    owner_id: str
    day: date
    error: str
    reason: str
