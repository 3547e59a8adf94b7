"""Domain models for the daily schedule engine.

Every entity is a frozen value object: the engine returns new instances and
never mutates what it is given.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import StrEnum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from dayplan.domain.intervals import Interval, make_interval, merge

MIN_WORKING_MINUTES = 4 * 60
MAX_WORKING_MINUTES = 16 * 60


class ScheduleItemType(StrEnum):
    TASK = "task"
    SUBTASK = "subtask"
    MEETING = "meeting"
    BREAK = "break"
    PERSONAL = "personal"
    BLOCKED = "blocked"
    FOCUS = "focus"
    REVIEW = "review"


class ScheduleItemStatus(StrEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


class Priority(StrEnum):
    CRITICAL = "critical"
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BreakType(StrEnum):
    LUNCH = "lunch"
    SHORT = "short"
    OTHER = "other"


class ConflictType(StrEnum):
    OVERLAP = "overlap"
    OVERBOOKED = "overbooked"
    DEADLINE = "deadline"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Availability(StrEnum):
    FREE = "free"
    BUSY = "busy"
    TENTATIVE = "tentative"


class ResolutionType(StrEnum):
    MOVE = "move"
    RESIZE = "resize"
    SPLIT = "split"
    CANCEL = "cancel"


class Frequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class DragType(StrEnum):
    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


class MutationAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MOVE = "move"
    BULK = "bulk"
    WORKING_HOURS = "working-hours"


TASK_TYPES = frozenset({ScheduleItemType.TASK, ScheduleItemType.SUBTASK})
PRODUCTIVE_TYPES = frozenset(
    {
        ScheduleItemType.TASK,
        ScheduleItemType.SUBTASK,
        ScheduleItemType.FOCUS,
        ScheduleItemType.REVIEW,
    }
)

# Lower rank = more important
PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.URGENT: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class RecurringPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    frequency: Frequency
    interval: int = 1
    end_date: date | None = None
    occurrences: int | None = None
    days_of_week: list[int] | None = None  # 0 = Sunday ... 6 = Saturday
    day_of_month: int | None = None
    exceptions: list[date] = Field(default_factory=list)


class ScheduleItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    day: date
    title: str
    type: ScheduleItemType = ScheduleItemType.TASK
    status: ScheduleItemStatus = ScheduleItemStatus.PLANNED
    priority: Priority = Priority.MEDIUM
    start_time: str
    end_time: str
    description: str | None = None
    task_id: str | None = None
    parent_id: str | None = None
    is_locked: bool = False
    recurring_pattern: RecurringPattern | None = None
    estimated_minutes: int | None = Field(default=None, ge=0)
    actual_minutes: int | None = Field(default=None, ge=0)
    completion_rate: float = Field(default=0, ge=0, le=100)
    due_date: date | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _valid_interval(self) -> ScheduleItem:
        make_interval(self.start_time, self.end_time)
        return self

    @property
    def interval(self) -> Interval:
        return make_interval(self.start_time, self.end_time)

    @property
    def duration(self) -> int:
        return self.interval.duration


class BreakTime(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: str
    end_time: str
    type: BreakType = BreakType.OTHER

    @model_validator(mode="after")
    def _valid_interval(self) -> BreakTime:
        make_interval(self.start_time, self.end_time)
        return self

    @property
    def interval(self) -> Interval:
        return make_interval(self.start_time, self.end_time)


class WorkingHours(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: str = "09:00"
    end_time: str = "18:00"
    break_times: list[BreakTime] = Field(default_factory=list)

    @model_validator(mode="after")
    def _valid_window(self) -> WorkingHours:
        window = make_interval(self.start_time, self.end_time)
        if not MIN_WORKING_MINUTES <= window.duration <= MAX_WORKING_MINUTES:
            raise ValueError("working hours must span between 4 and 16 hours")
        for bt in self.break_times:
            iv = bt.interval
            if iv.start < window.start or iv.end > window.end:
                raise ValueError(
                    f"break {iv.format()} lies outside working hours {window.format()}"
                )
        return self

    @property
    def interval(self) -> Interval:
        return make_interval(self.start_time, self.end_time)

    @property
    def break_intervals(self) -> list[Interval]:
        return merge(bt.interval for bt in self.break_times)

    @property
    def break_minutes(self) -> int:
        return sum(iv.duration for iv in self.break_intervals)

    @property
    def total_available(self) -> int:
        """Working minutes excluding breaks."""
        return self.interval.duration - self.break_minutes


def default_working_hours() -> WorkingHours:
    return WorkingHours(
        start_time="09:00",
        end_time="18:00",
        break_times=[BreakTime(start_time="12:00", end_time="13:00", type=BreakType.LUNCH)],
    )


def schedule_order(item: ScheduleItem) -> tuple[int, datetime, str]:
    """Sort key keeping a day's items start-ordered, ties by creation."""
    return (item.interval.start, item.created_at, item.id)


class DailySchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    working_hours: WorkingHours = Field(default_factory=default_working_hours)
    items: list[ScheduleItem] = Field(default_factory=list)

    @field_validator("items")
    @classmethod
    def _start_sorted(cls, items: list[ScheduleItem]) -> list[ScheduleItem]:
        return sorted(items, key=schedule_order)

    @model_validator(mode="after")
    def _items_belong_to_day(self) -> DailySchedule:
        seen: set[str] = set()
        for item in self.items:
            if item.day != self.day:
                raise ValueError(f"item {item.id} belongs to {item.day}, not {self.day}")
            if item.id in seen:
                raise ValueError(f"duplicate schedule item id {item.id}")
            seen.add(item.id)
        return self

    def get(self, item_id: str) -> ScheduleItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class ScheduleConflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: ConflictType
    items: list[str]
    message: str
    severity: Severity
    overlap_minutes: int = 0


class TimeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    start_time: str
    end_time: str
    availability: Availability = Availability.FREE
    score: float = 0.0


class ConflictResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ResolutionType
    target_item_id: str
    new_time_slot: TimeSlot | None = None
    description: str


class ScheduleSuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    item_id: str
    suggested_slots: list[TimeSlot]
    reason: str
    confidence: float = Field(ge=0, le=1)
    factors: list[str] = Field(default_factory=list)


class ScheduleStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    total_tasks: int
    completed_tasks: int
    total_hours: float
    productive_hours: float
    break_hours: float
    meeting_minutes: int
    focus_minutes: int
    utilization_rate: float
    completion_rate: float
    overtime_hours: float
    total_estimated_minutes: int = 0
    total_actual_minutes: int = 0

    @computed_field
    @property
    def utilization_percent(self) -> int:
        return round(self.utilization_rate)

    @computed_field
    @property
    def completion_percent(self) -> int:
        return round(self.completion_rate)


class MutationOutcome(StrEnum):
    APPLIED = "applied"
    REJECTED = "rejected"


class MutationLogEntry(BaseModel):
    correlation_id: str
    owner_id: str
    day: date
    action: MutationAction
    outcome: MutationOutcome
    timestamp: datetime = Field(default_factory=_utcnow)
    error: str | None = None
    reason: str | None = None
    conflict_ids: list[str] = Field(default_factory=list)


class DateRange(BaseModel):
    """Inclusive range of days."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _end_not_before_start(self) -> DateRange:
        if self.end < self.start:
            raise ValueError("range end must not be before its start")
        return self


# ---------------------------------------------------------------------------
# Request / mutation DTOs
# ---------------------------------------------------------------------------


class SuggestionRequest(BaseModel):
    """An unscheduled item looking for a place in the day."""

    item_id: str
    duration_minutes: int = Field(gt=0)
    priority: Priority = Priority.MEDIUM
    due_date: date | None = None


class ScheduleItemUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    status: ScheduleItemStatus | None = None
    priority: Priority | None = None
    tags: list[str] | None = None
    is_locked: bool | None = None
    actual_minutes: int | None = Field(default=None, ge=0)
    completion_rate: float | None = Field(default=None, ge=0, le=100)
    due_date: date | None = None


class ScheduleDragData(BaseModel):
    """What a drop on the time grid must provide."""

    item_id: str
    drag_type: DragType
    start_time: str | None = None
    end_time: str | None = None

    @model_validator(mode="after")
    def _required_times(self) -> ScheduleDragData:
        if self.drag_type in (DragType.MOVE, DragType.RESIZE_START) and not self.start_time:
            raise ValueError(f"{self.drag_type} requires start_time")
        if self.drag_type == DragType.RESIZE_END and not self.end_time:
            raise ValueError("resize-end requires end_time")
        return self


class ScheduleMutation(BaseModel):
    action: MutationAction
    item: ScheduleItem | None = None
    item_id: str | None = None
    item_ids: list[str] = Field(default_factory=list)
    changes: ScheduleItemUpdate | None = None
    drag: ScheduleDragData | None = None
    working_hours: WorkingHours | None = None

    @model_validator(mode="after")
    def _payload_matches_action(self) -> ScheduleMutation:
        required = {
            MutationAction.CREATE: self.item is not None,
            MutationAction.UPDATE: self.item_id is not None and self.changes is not None,
            MutationAction.DELETE: self.item_id is not None,
            MutationAction.MOVE: self.drag is not None,
            MutationAction.BULK: bool(self.item_ids) and self.changes is not None,
            MutationAction.WORKING_HOURS: self.working_hours is not None,
        }
        if not required[self.action]:
            raise ValueError(f"incomplete payload for {self.action} mutation")
        return self


class SuggestionQuery(BaseModel):
    candidate: SuggestionRequest
    schedules: list[DailySchedule] = Field(min_length=1)
    today: date | None = None


class RecurrenceExpansionRequest(BaseModel):
    pattern: RecurringPattern
    anchor: ScheduleItem
    date_range: DateRange


class ScheduleView(BaseModel):
    schedule: DailySchedule
    conflicts: list[ScheduleConflict]
    statistics: ScheduleStatistics
