from __future__ import annotations

import re
from datetime import date, datetime, time, tzinfo

from app.core.exceptions import FormatError, InvalidRangeError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def to_minutes(value: str, *, field: str = "time") -> int:
    """Convert a zero-padded ``HH:MM`` string to minutes since midnight."""
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise FormatError(field, str(value))
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test: ``[a_start, a_end)`` against ``[b_start, b_end)``.

    Back-to-back intervals (one ending exactly when the other starts) do not
    overlap.
    """
    return a_start < b_end and a_end > b_start


def times_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return intervals_overlap(to_minutes(a_start), to_minutes(a_end), to_minutes(b_start), to_minutes(b_end))


def validate_time_range(start_time: str, end_time: str) -> tuple[int, int]:
    start = to_minutes(start_time, field="start_time")
    end = to_minutes(end_time, field="end_time")
    if end <= start:
        raise InvalidRangeError("Start time must be before end time", field="end_time")
    return start, end


def combine(day: date, value: str, tz: tzinfo | None = None) -> datetime:
    minutes = to_minutes(value)
    return datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=tz)
