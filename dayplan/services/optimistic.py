"""Client-side optimistic view of one day's schedule.

Mutations are applied locally first and tagged with a correlation id. The
matching applied or rejected result then confirms or drops them as a whole.
"""

from __future__ import annotations

import uuid
from datetime import date

from dayplan.domain.bus import EventBus
from dayplan.domain.events import (
    ScheduleMutationApplied,
    ScheduleMutationRejected,
    ScheduleMutationRequested,
)
from dayplan.domain.models import DailySchedule, ScheduleMutation
from dayplan.services.editing import apply_mutation


class OptimisticSchedule:
    def __init__(
        self,
        owner_id: str,
        schedule: DailySchedule,
        bus: EventBus | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.confirmed = schedule
        self._pending: dict[str, ScheduleMutation] = {}
        self._bus = bus
        if bus is not None:
            bus.subscribe(ScheduleMutationApplied, self.on_applied)
            bus.subscribe(ScheduleMutationRejected, self.on_rejected)

    def close(self) -> None:
        """Stop listening for results; pending mutations stay unresolved."""
        if self._bus is None:
            return
        self._bus.unsubscribe(ScheduleMutationApplied, self.on_applied)
        self._bus.unsubscribe(ScheduleMutationRejected, self.on_rejected)
        self._bus = None

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def current(self) -> DailySchedule:
        """The confirmed schedule with pending mutations replayed in order."""
        schedule = self.confirmed
        for mutation in self._pending.values():
            try:
                schedule = apply_mutation(schedule, mutation)
            except ValueError:
                # No longer applies on top of the newer confirmed state
                continue
        return schedule

    def propose(self, mutation: ScheduleMutation) -> ScheduleMutationRequested:
        """Apply ``mutation`` tentatively and return the command to publish.

        Raises the engine error right away if the mutation does not apply to
        the current view; nothing is recorded in that case.
        """
        apply_mutation(self.current, mutation)
        correlation_id = str(uuid.uuid4())
        self._pending[correlation_id] = mutation
        return ScheduleMutationRequested(
            correlation_id=correlation_id,
            owner_id=self.owner_id,
            day=self.confirmed.day,
            mutation=mutation,
        )

    def on_applied(self, result: ScheduleMutationApplied) -> None:
        if not self._is_mine(result.owner_id, result.day):
            return
        self.confirmed = result.schedule
        self._pending.pop(result.correlation_id, None)

    def on_rejected(self, result: ScheduleMutationRejected) -> None:
        if not self._is_mine(result.owner_id, result.day):
            return
        self._pending.pop(result.correlation_id, None)

    def _is_mine(self, owner_id: str, day: date) -> bool:
        return owner_id == self.owner_id and day == self.confirmed.day
