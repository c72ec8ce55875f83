from datetime import date, datetime

from pydantic import BaseModel

from app.models.class_session import ClassSessionStatus, LocationType


class ClassSessionOut(BaseModel):
    id: str
    schedule_id: str | None = None
    class_id: str | None = None
    course_id: str
    teacher_id: str
    title: str
    scheduled_date: date
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    location_type: LocationType
    room: str | None = None
    building: str | None = None
    status: ClassSessionStatus

    model_config = {"from_attributes": True}
