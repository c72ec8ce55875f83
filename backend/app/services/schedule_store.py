from __future__ import annotations

import hashlib
import logging
from typing import Protocol

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from app.models.schedule import DAY_ORDER, ApprovalStatus, DayOfWeek, Schedule

logger = logging.getLogger(__name__)


class ScheduleStore(Protocol):
    """Persistence capabilities the conflict checker, expander and service rely on."""

    def get(self, slot_id: str) -> Schedule | None: ...

    def add(self, slot: Schedule) -> Schedule: ...

    def find(
        self,
        *,
        teacher_id: str | None = None,
        course_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
        room: str | None = None,
        is_active: bool | None = True,
        exclude_id: str | None = None,
    ) -> list[Schedule]: ...

    def find_pending(self) -> list[Schedule]: ...

    def lock_window(self, *, teacher_id: str, day_of_week: DayOfWeek, room: str | None = None) -> None: ...


def _sort_key(slot: Schedule) -> tuple[int, str]:
    return DAY_ORDER.index(slot.day_of_week), slot.start_time


def _advisory_key(*parts: str) -> int:
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).digest()
    # pg_advisory_xact_lock takes a signed bigint.
    return int.from_bytes(digest[:8], "big", signed=True)


class SqlScheduleStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, slot_id: str) -> Schedule | None:
        return self.db.get(Schedule, slot_id)

    def add(self, slot: Schedule) -> Schedule:
        self.db.add(slot)
        self.db.flush()
        return slot

    def find(
        self,
        *,
        teacher_id: str | None = None,
        course_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
        room: str | None = None,
        is_active: bool | None = True,
        exclude_id: str | None = None,
    ) -> list[Schedule]:
        query = select(Schedule)
        if teacher_id is not None:
            query = query.where(Schedule.teacher_id == teacher_id)
        if course_id is not None:
            query = query.where(Schedule.course_id == course_id)
        if day_of_week is not None:
            query = query.where(Schedule.day_of_week == day_of_week)
        if room is not None:
            query = query.where(Schedule.room == room)
        if is_active is not None:
            query = query.where(Schedule.is_active.is_(is_active))
        if exclude_id is not None:
            query = query.where(Schedule.id != exclude_id)
        slots = list(self.db.execute(query).scalars())
        return sorted(slots, key=_sort_key)

    def find_pending(self) -> list[Schedule]:
        query = (
            select(Schedule)
            .where(Schedule.approval_status == ApprovalStatus.pending)
            .order_by(Schedule.created_at.asc())
        )
        return list(self.db.execute(query).scalars())

    def lock_window(self, *, teacher_id: str, day_of_week: DayOfWeek, room: str | None = None) -> None:
        """Serialise concurrent writers for the same teacher/room and day.

        Only PostgreSQL offers transaction-scoped advisory locks; on other
        dialects the check-then-write window stays unguarded.
        """
        if self.db.get_bind().dialect.name != "postgresql":
            return
        keys = [_advisory_key("teacher", teacher_id, day_of_week.value)]
        if room:
            keys.append(_advisory_key("room", room, day_of_week.value))
        for key in sorted(keys):
            self.db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
        logger.debug("Acquired %d scheduling lock(s) for %s on %s", len(keys), teacher_id, day_of_week.value)
