import datetime as dt
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.schedule import ApprovalStatus, DayOfWeek, RecurrenceType
from app.services.time_intervals import TIME_PATTERN, to_minutes


def _validate_time(value: str | None) -> str | None:
    if value is None:
        return None
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return value


def _normalize_day(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class ScheduleCreate(BaseModel):
    class_id: str = Field(min_length=1, max_length=36)
    course_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    room: str | None = Field(default=None, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    recurrence_type: RecurrenceType = RecurrenceType.weekly
    effective_from: date | None = None
    effective_to: date | None = None
    notes: str | None = Field(default=None, max_length=2000)
    requires_approval: bool | None = None

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return _normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return _validate_time(value)

    @model_validator(mode="after")
    def validate_ranges(self) -> "ScheduleCreate":
        if to_minutes(self.end_time) <= to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        if self.effective_from and self.effective_to and self.effective_to <= self.effective_from:
            raise ValueError("effective_to must be after effective_from")
        return self


class ScheduleUpdate(BaseModel):
    class_id: str | None = Field(default=None, min_length=1, max_length=36)
    day_of_week: DayOfWeek | None = None
    start_time: str | None = None
    end_time: str | None = None
    room: str | None = Field(default=None, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    recurrence_type: RecurrenceType | None = None
    effective_from: date | None = None
    effective_to: date | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return _normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        return _validate_time(value)


class ScheduleOut(BaseModel):
    id: str
    class_id: str
    course_id: str
    teacher_id: str
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    duration_minutes: int
    room: str | None = None
    building: str | None = None
    recurrence_type: RecurrenceType
    effective_from: date | None = None
    effective_to: date | None = None
    is_active: bool
    notes: str | None = None
    requires_approval: bool
    approval_status: ApprovalStatus | None = None
    approved_by_id: str | None = None
    approval_date: datetime | None = None
    approval_notes: str | None = None
    created_by_id: str
    updated_by_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ConflictCheckRequest(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    room: str | None = Field(default=None, max_length=100)
    exclude_id: str | None = Field(default=None, max_length=36)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return _normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return _validate_time(value)


class ConflictCheckOut(BaseModel):
    has_conflict: bool
    conflict_type: Literal["teacher", "room"] | None = None
    conflicting_schedule: ScheduleOut | None = None
    message: str | None = None


class ApprovalDecision(BaseModel):
    notes: str | None = Field(default=None, max_length=500)


class GenerateSessionsRequest(BaseModel):
    start_date: date
    end_date: date
    on_existing: Literal["duplicate", "skip", "error"] | None = None

    @model_validator(mode="after")
    def validate_order(self) -> "GenerateSessionsRequest":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class GenerationFailureOut(BaseModel):
    date: dt.date
    error: str


class GenerationReportOut(BaseModel):
    schedule_id: str
    count: int
    skipped: int
    dates: list[date]
    failures: list[GenerationFailureOut]

    model_config = {"from_attributes": True}


class WeeklyTimetableOut(BaseModel):
    timetable: dict[DayOfWeek, list[ScheduleOut]]
