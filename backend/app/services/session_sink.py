from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.class_session import ClassSession, ClassSessionStatus, LocationType


@dataclass(frozen=True)
class SessionDraft:
    """A concrete dated occurrence of a slot, ready to hand to the session owner."""

    schedule_id: str
    class_id: str | None
    course_id: str
    teacher_id: str
    title: str
    scheduled_date: date
    start_at: datetime
    end_at: datetime
    location_type: LocationType
    room: str | None = None
    building: str | None = None
    status: ClassSessionStatus = ClassSessionStatus.scheduled

    @property
    def duration_minutes(self) -> int:
        return max(0, int((self.end_at - self.start_at).total_seconds() // 60))


class SessionInstanceSink(Protocol):
    def exists(self, schedule_id: str, scheduled_date: date) -> bool: ...

    def create(self, draft: SessionDraft, *, isolated: bool = False) -> str: ...


class SqlSessionInstanceSink:
    def __init__(self, db: Session) -> None:
        self.db = db

    def exists(self, schedule_id: str, scheduled_date: date) -> bool:
        query = (
            select(ClassSession.id)
            .where(
                ClassSession.schedule_id == schedule_id,
                ClassSession.scheduled_date == scheduled_date,
                ClassSession.status != ClassSessionStatus.cancelled,
            )
            .limit(1)
        )
        return self.db.execute(query).scalar_one_or_none() is not None

    def _build(self, draft: SessionDraft) -> ClassSession:
        return ClassSession(
            schedule_id=draft.schedule_id,
            class_id=draft.class_id,
            course_id=draft.course_id,
            teacher_id=draft.teacher_id,
            title=draft.title,
            scheduled_date=draft.scheduled_date,
            start_at=draft.start_at,
            end_at=draft.end_at,
            duration_minutes=draft.duration_minutes,
            location_type=draft.location_type,
            room=draft.room,
            building=draft.building,
            status=draft.status,
        )

    def create(self, draft: SessionDraft, *, isolated: bool = False) -> str:
        record = self._build(draft)
        if isolated:
            # A failed insert only unwinds its own savepoint.
            with self.db.begin_nested():
                self.db.add(record)
        else:
            self.db.add(record)
            self.db.flush()
        return record.id
