from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from typing import Callable, Iterator, Literal

from app.core.exceptions import (
    DuplicateInstanceError,
    InstanceGenerationError,
    InvalidRangeError,
    ResourceNotFoundError,
    SlotStateError,
)
from app.models.class_session import LocationType
from app.models.schedule import Schedule
from app.services.schedule_store import ScheduleStore
from app.services.session_sink import SessionDraft, SessionInstanceSink
from app.services.time_intervals import combine

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["duplicate", "skip", "error"]
FailurePolicy = Literal["best_effort", "fail_fast"]


@dataclass
class GenerationFailure:
    date: date
    error: str


@dataclass
class GenerationReport:
    schedule_id: str
    count: int = 0
    skipped: int = 0
    dates: list[date] = field(default_factory=list)
    failures: list[GenerationFailure] = field(default_factory=list)


def iter_matching_dates(start: date, end: date, weekday: int) -> Iterator[date]:
    """Walk ``start..end`` inclusive and yield every date falling on ``weekday``."""
    current = start
    while current <= end:
        if current.weekday() == weekday:
            yield current
        current += timedelta(days=1)


def location_for(slot: Schedule) -> LocationType:
    return LocationType.offline if (slot.room or slot.building) else LocationType.online


class InstanceGenerator:
    def __init__(
        self,
        store: ScheduleStore,
        sink: SessionInstanceSink,
        *,
        tz: tzinfo | None = None,
        duplicate_policy: DuplicatePolicy = "skip",
        failure_policy: FailurePolicy = "best_effort",
        respect_effective_range: bool = True,
        max_days: int = 366,
    ) -> None:
        self.store = store
        self.sink = sink
        self.tz = tz
        self.duplicate_policy = duplicate_policy
        self.failure_policy = failure_policy
        self.respect_effective_range = respect_effective_range
        self.max_days = max_days

    def _window(self, slot: Schedule, start_date: date, end_date: date) -> tuple[date, date]:
        if not self.respect_effective_range:
            return start_date, end_date
        lower = max(start_date, slot.effective_from) if slot.effective_from else start_date
        upper = min(end_date, slot.effective_to) if slot.effective_to else end_date
        return lower, upper

    def build_draft(self, slot: Schedule, day: date, title: str | None = None) -> SessionDraft:
        return SessionDraft(
            schedule_id=slot.id,
            class_id=slot.class_id,
            course_id=slot.course_id,
            teacher_id=slot.teacher_id,
            title=title or f"Class for {slot.course_id} on {slot.day_of_week.value}",
            scheduled_date=day,
            start_at=combine(day, slot.start_time, self.tz),
            end_at=combine(day, slot.end_time, self.tz),
            location_type=location_for(slot),
            room=slot.room,
            building=slot.building,
        )

    def generate(
        self,
        slot_id: str,
        start_date: date,
        end_date: date,
        *,
        on_existing: DuplicatePolicy | None = None,
        title: str | Callable[[Schedule], str] | None = None,
    ) -> GenerationReport:
        if end_date <= start_date:
            raise InvalidRangeError("End date must be after start date", field="end_date")
        if (end_date - start_date).days + 1 > self.max_days:
            raise InvalidRangeError(
                f"Date range cannot exceed {self.max_days} days",
                field="end_date",
            )

        slot = self.store.get(slot_id)
        if slot is None:
            raise ResourceNotFoundError("Schedule", slot_id)
        if not slot.is_active:
            raise SlotStateError(
                "Sessions can only be generated from an active schedule",
                details={"schedule_id": slot.id},
            )

        if callable(title):
            title = title(slot)
        policy = on_existing or self.duplicate_policy
        lower, upper = self._window(slot, start_date, end_date)
        candidates = list(iter_matching_dates(lower, upper, slot.day_of_week.weekday))

        if policy == "error":
            existing = [day for day in candidates if self.sink.exists(slot.id, day)]
            if existing:
                raise DuplicateInstanceError(
                    "Sessions already exist for this schedule in the requested range",
                    details={"schedule_id": slot.id, "dates": [day.isoformat() for day in existing]},
                )

        report = GenerationReport(schedule_id=slot.id)
        isolated = self.failure_policy == "best_effort"
        for day in candidates:
            if policy == "skip" and self.sink.exists(slot.id, day):
                report.skipped += 1
                continue
            draft = self.build_draft(slot, day, title)
            try:
                self.sink.create(draft, isolated=isolated)
            except Exception as exc:
                if not isolated:
                    logger.error("Session generation for %s aborted on %s", slot.id, day.isoformat())
                    raise InstanceGenerationError(
                        f"Failed to create session on {day.isoformat()}",
                        details={"schedule_id": slot.id, "date": day.isoformat(), "created_before_failure": report.count},
                    ) from exc
                logger.warning("Skipping session for %s on %s", slot.id, day.isoformat(), exc_info=True)
                report.failures.append(GenerationFailure(date=day, error=str(exc)))
                continue
            report.count += 1
            report.dates.append(day)

        logger.info(
            "Generated %d session(s) for schedule %s between %s and %s (skipped=%d, failed=%d)",
            report.count,
            slot.id,
            lower.isoformat(),
            upper.isoformat(),
            report.skipped,
            len(report.failures),
        )
        return report
