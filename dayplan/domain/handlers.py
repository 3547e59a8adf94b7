"""Message handlers, wired up at application startup."""

from __future__ import annotations

import logging

from dayplan.config import DEFAULT_CONFIG, EngineConfig
from dayplan.domain.bus import EventBus
from dayplan.domain.events import (
    ScheduleMutationApplied,
    ScheduleMutationRejected,
    ScheduleMutationRequested,
)
from dayplan.domain.models import MutationLogEntry, MutationOutcome
from dayplan.repos.memory import MutationLogRepository, ScheduleRepository
from dayplan.services.conflicts import detect_conflicts
from dayplan.services.editing import apply_mutation
from dayplan.services.statistics import compute_statistics

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires mutation handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        schedule_repo: ScheduleRepository,
        mutation_log_repo: MutationLogRepository,
        config: EngineConfig | None = None,
    ) -> None:
        self.bus = bus
        self.schedule_repo = schedule_repo
        self.mutation_log_repo = mutation_log_repo
        self.config = config or DEFAULT_CONFIG
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ScheduleMutationRequested, self.on_mutation_requested)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_mutation_requested(self, command: ScheduleMutationRequested) -> None:
        current = self.schedule_repo.get_or_create(command.owner_id, command.day)

        # 1. Apply; engine and model validation errors reject the command
        try:
            updated = apply_mutation(current, command.mutation)
        except ValueError as exc:
            logger.info(
                "Rejected %s mutation %s for %s on %s: %s",
                command.mutation.action,
                command.correlation_id,
                command.owner_id,
                command.day,
                exc,
            )
            self.mutation_log_repo.add(
                MutationLogEntry(
                    correlation_id=command.correlation_id,
                    owner_id=command.owner_id,
                    day=command.day,
                    action=command.mutation.action,
                    outcome=MutationOutcome.REJECTED,
                    error=type(exc).__name__,
                    reason=str(exc),
                )
            )
            self.bus.publish(
                ScheduleMutationRejected(
                    correlation_id=command.correlation_id,
                    owner_id=command.owner_id,
                    day=command.day,
                    error=type(exc).__name__,
                    reason=str(exc),
                )
            )
            return

        # 2. Store and recompute
        self.schedule_repo.save(command.owner_id, updated)
        conflicts = detect_conflicts(updated, self.config)
        statistics = compute_statistics(updated)
        if conflicts:
            logger.info(
                "%d conflict(s) on %s for %s after %s",
                len(conflicts),
                command.day,
                command.owner_id,
                command.correlation_id,
            )

        # 3. Log
        self.mutation_log_repo.add(
            MutationLogEntry(
                correlation_id=command.correlation_id,
                owner_id=command.owner_id,
                day=command.day,
                action=command.mutation.action,
                outcome=MutationOutcome.APPLIED,
                conflict_ids=[c.id for c in conflicts],
            )
        )

        # 4. Publish the authoritative result
        self.bus.publish(
            ScheduleMutationApplied(
                correlation_id=command.correlation_id,
                owner_id=command.owner_id,
                day=command.day,
                schedule=updated,
                conflicts=conflicts,
                statistics=statistics,
            )
        )
