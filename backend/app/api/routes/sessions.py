from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.class_session import ClassSession
from app.models.user import User
from app.schemas.class_session import ClassSessionOut

router = APIRouter()


@router.get("/", response_model=list[ClassSessionOut])
def list_sessions(
    schedule_id: str | None = Query(default=None),
    teacher_id: str | None = Query(default=None),
    course_id: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ClassSessionOut]:
    query = select(ClassSession)
    if schedule_id is not None:
        query = query.where(ClassSession.schedule_id == schedule_id)
    if teacher_id is not None:
        query = query.where(ClassSession.teacher_id == teacher_id)
    if course_id is not None:
        query = query.where(ClassSession.course_id == course_id)
    if date_from is not None:
        query = query.where(ClassSession.scheduled_date >= date_from)
    if date_to is not None:
        query = query.where(ClassSession.scheduled_date <= date_to)
    query = query.order_by(ClassSession.scheduled_date.asc(), ClassSession.start_at.asc())
    return list(db.execute(query).scalars())
