from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from app.core.exceptions import ConflictError
from app.models.schedule import DayOfWeek, Schedule
from app.services.schedule_store import ScheduleStore
from app.services.time_intervals import intervals_overlap, validate_time_range

logger = logging.getLogger(__name__)

TEACHER_CONFLICT_MESSAGE = "Teacher has another class at this time"
ROOM_CONFLICT_MESSAGE = "Room is already booked at this time"


@dataclass(frozen=True)
class ConflictResult:
    has_conflict: bool
    conflict_type: Literal["teacher", "room"] | None = None
    conflicting_slot: Schedule | None = None
    message: str | None = None

    def raise_for_conflict(self) -> None:
        if not self.has_conflict or self.conflicting_slot is None:
            return
        slot = self.conflicting_slot
        raise ConflictError(
            f"{self.message}. Conflicting schedule: {slot.course_id} on "
            f"{slot.day_of_week.value} at {slot.start_time}-{slot.end_time}",
            conflict_type=self.conflict_type,
            conflicting_slot=slot.describe(),
        )


NO_CONFLICT = ConflictResult(has_conflict=False)


class ConflictChecker:
    def __init__(self, store: ScheduleStore) -> None:
        self.store = store

    def _first_overlap(self, candidates: list[Schedule], start: int, end: int) -> Schedule | None:
        for slot in candidates:
            if intervals_overlap(start, end, slot.start_minutes, slot.end_minutes):
                return slot
        return None

    def check(
        self,
        *,
        teacher_id: str,
        day_of_week: DayOfWeek,
        start_time: str,
        end_time: str,
        room: str | None = None,
        exclude_id: str | None = None,
    ) -> ConflictResult:
        start, end = validate_time_range(start_time, end_time)

        teacher_slots = self.store.find(teacher_id=teacher_id, day_of_week=day_of_week, exclude_id=exclude_id)
        clash = self._first_overlap(teacher_slots, start, end)
        if clash is not None:
            logger.info("Teacher %s already booked on %s by slot %s", teacher_id, day_of_week.value, clash.id)
            return ConflictResult(
                has_conflict=True,
                conflict_type="teacher",
                conflicting_slot=clash,
                message=TEACHER_CONFLICT_MESSAGE,
            )

        if room:
            room_slots = self.store.find(room=room, day_of_week=day_of_week, exclude_id=exclude_id)
            clash = self._first_overlap(room_slots, start, end)
            if clash is not None:
                logger.info("Room %s already booked on %s by slot %s", room, day_of_week.value, clash.id)
                return ConflictResult(
                    has_conflict=True,
                    conflict_type="room",
                    conflicting_slot=clash,
                    message=ROOM_CONFLICT_MESSAGE,
                )

        return NO_CONFLICT
