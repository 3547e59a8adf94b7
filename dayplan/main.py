"""HTTP surface for the daily schedule engine."""

from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dayplan.config import load_config
from dayplan.domain.bus import EventBus
from dayplan.domain.errors import ScheduleEngineError, UnknownScheduleItem
from dayplan.domain.events import ScheduleMutationRequested
from dayplan.domain.handlers import HandlerRegistry
from dayplan.domain.models import (
    DailySchedule,
    DateRange,
    MutationAction,
    MutationLogEntry,
    MutationOutcome,
    RecurrenceExpansionRequest,
    ScheduleConflict,
    ScheduleItem,
    ScheduleMutation,
    ScheduleStatistics,
    ScheduleSuggestion,
    ScheduleView,
    SuggestionQuery,
    SuggestionRequest,
    WorkingHours,
)
from dayplan.repos.memory import MutationLogRepository, ScheduleRepository
from dayplan.services.conflicts import detect_conflicts
from dayplan.services.recurrence import expand_recurrence
from dayplan.services.statistics import compute_statistics
from dayplan.services.suggestions import generate_suggestions

MAX_RANGE_DAYS = 31

config = load_config()
logging.basicConfig(
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    level=config.log_level,
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Daily Schedule Engine")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
schedule_repo = ScheduleRepository()
mutation_log_repo = MutationLogRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    schedule_repo=schedule_repo,
    mutation_log_repo=mutation_log_repo,
    config=config,
)


class RangeSuggestionRequest(BaseModel):
    candidate: SuggestionRequest
    date_range: DateRange


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(ScheduleEngineError)
def _engine_error(request: Request, exc: ScheduleEngineError) -> JSONResponse:
    return JSONResponse(
        status_code=422, content={"detail": str(exc), "error": type(exc).__name__}
    )


@app.exception_handler(UnknownScheduleItem)
def _unknown_item(request: Request, exc: UnknownScheduleItem) -> JSONResponse:
    return JSONResponse(
        status_code=404, content={"detail": str(exc), "error": type(exc).__name__}
    )


def _view(schedule: DailySchedule) -> ScheduleView:
    return ScheduleView(
        schedule=schedule,
        conflicts=detect_conflicts(schedule, config),
        statistics=compute_statistics(schedule),
    )


def _bounded_range(start: date, end: date) -> DateRange:
    """Build a range of at most MAX_RANGE_DAYS days, or fail with 400."""
    days = (end - start).days + 1
    if days < 1:
        raise HTTPException(status_code=400, detail="Range end must not be before its start")
    if days > MAX_RANGE_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Range spans {days} days; at most {MAX_RANGE_DAYS} are allowed",
        )
    return DateRange(start=start, end=end)


def _submit(owner_id: str, day: date, mutation: ScheduleMutation) -> ScheduleView:
    """Publish a mutation command and turn its logged outcome into a response."""
    correlation_id = str(uuid.uuid4())
    event_bus.publish(
        ScheduleMutationRequested(
            correlation_id=correlation_id,
            owner_id=owner_id,
            day=day,
            mutation=mutation,
        )
    )

    entry = mutation_log_repo.get(correlation_id)
    if entry is None:
        logger.error("No outcome recorded for mutation %s", correlation_id)
        raise HTTPException(status_code=500, detail="Mutation was not processed")
    if entry.outcome == MutationOutcome.REJECTED:
        status = 404 if entry.error == UnknownScheduleItem.__name__ else 422
        raise HTTPException(status_code=status, detail=entry.reason)

    return _view(schedule_repo.get_or_create(owner_id, day))


# ── Engine routes ─────────────────────────────────────────────────────


@app.post("/conflicts", response_model=list[ScheduleConflict])
def post_conflicts(schedule: DailySchedule) -> list[ScheduleConflict]:
    """Detect conflicts in a posted day."""
    return detect_conflicts(schedule, config)


@app.post("/statistics", response_model=ScheduleStatistics)
def post_statistics(schedule: DailySchedule) -> ScheduleStatistics:
    return compute_statistics(schedule)


@app.post("/suggestions", response_model=list[ScheduleSuggestion])
def post_suggestions(query: SuggestionQuery) -> list[ScheduleSuggestion]:
    """Rank free slots across the posted days for a candidate item."""
    return generate_suggestions(
        query.candidate, query.schedules, today=query.today, config=config
    )


@app.post("/recurrence/expand", response_model=list[ScheduleItem])
def post_recurrence(body: RecurrenceExpansionRequest) -> list[ScheduleItem]:
    """Expand a recurring pattern; custom frequencies are not available over HTTP."""
    date_range = _bounded_range(body.date_range.start, body.date_range.end)
    return list(expand_recurrence(body.pattern, body.anchor, date_range))


# ── Stored schedules ──────────────────────────────────────────────────


@app.get("/schedules/{owner_id}", response_model=list[ScheduleView])
def get_schedule_range(owner_id: str, start: date, end: date) -> list[ScheduleView]:
    """Return one view per day of an inclusive range, at most 31 days."""
    date_range = _bounded_range(start, end)
    return [_view(schedule) for schedule in schedule_repo.list_range(owner_id, date_range)]


@app.get("/schedules/{owner_id}/{day}", response_model=ScheduleView)
def get_schedule(owner_id: str, day: date) -> ScheduleView:
    """Return a stored day with its conflicts and statistics."""
    return _view(schedule_repo.get_or_create(owner_id, day))


@app.put("/schedules/{owner_id}/{day}/working-hours", response_model=ScheduleView)
def put_working_hours(owner_id: str, day: date, working_hours: WorkingHours) -> ScheduleView:
    """Replace one day's working hours and breaks."""
    mutation = ScheduleMutation(
        action=MutationAction.WORKING_HOURS, working_hours=working_hours
    )
    return _submit(owner_id, day, mutation)


@app.post("/schedules/{owner_id}/{day}/mutations", response_model=ScheduleView)
def post_mutation(owner_id: str, day: date, mutation: ScheduleMutation) -> ScheduleView:
    """Apply a mutation through the bus and return the recomputed day."""
    return _submit(owner_id, day, mutation)


@app.get("/schedules/{owner_id}/{day}/mutations", response_model=list[MutationLogEntry])
def list_mutations(owner_id: str, day: date) -> list[MutationLogEntry]:
    return mutation_log_repo.list_for_day(owner_id, day)


@app.post("/schedules/{owner_id}/suggestions", response_model=list[ScheduleSuggestion])
def post_owner_suggestions(
    owner_id: str, body: RangeSuggestionRequest
) -> list[ScheduleSuggestion]:
    """Suggest slots over the owner's stored days, at most 31 of them."""
    date_range = _bounded_range(body.date_range.start, body.date_range.end)
    schedules = schedule_repo.list_range(owner_id, date_range)
    return generate_suggestions(
        body.candidate, schedules, today=date_range.start, config=config
    )
