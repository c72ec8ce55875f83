from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_current_user, get_schedule_service, require_roles
from app.models.schedule import DayOfWeek, Schedule
from app.models.user import User, UserRole
from app.schemas.schedule import (
    ApprovalDecision,
    ConflictCheckOut,
    ConflictCheckRequest,
    GenerateSessionsRequest,
    GenerationFailureOut,
    GenerationReportOut,
    ScheduleCreate,
    ScheduleOut,
    ScheduleUpdate,
    WeeklyTimetableOut,
)
from app.services.schedules import ScheduleService

router = APIRouter()

SCHEDULER_DEPENDENCY = require_roles(UserRole.admin, UserRole.manager, UserRole.coordinator)
APPROVER_DEPENDENCY = require_roles(UserRole.admin, UserRole.manager)


def _serialize(slots: list[Schedule]) -> list[ScheduleOut]:
    return [ScheduleOut.model_validate(slot) for slot in slots]


@router.get("/", response_model=list[ScheduleOut])
def list_schedules(
    course_id: str | None = Query(default=None),
    teacher_id: str | None = Query(default=None),
    day_of_week: DayOfWeek | None = Query(default=None),
    room: str | None = Query(default=None),
    is_active: bool | None = Query(default=True),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    slots = service.list_slots(
        teacher_id=teacher_id,
        course_id=course_id,
        day_of_week=day_of_week,
        room=room,
        is_active=is_active,
    )
    return _serialize(slots)


@router.post("/", response_model=ScheduleOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ScheduleCreate,
    current_user: User = Depends(SCHEDULER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    slot = service.create_slot(actor=current_user, **payload.model_dump())
    return ScheduleOut.model_validate(slot)


@router.get("/my", response_model=list[ScheduleOut])
def my_schedules(
    current_user: User = Depends(require_roles(UserRole.teacher)),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    return _serialize(service.list_by_teacher(current_user.id))


@router.get("/weekly", response_model=WeeklyTimetableOut)
def weekly_timetable(
    teacher_id: str | None = Query(default=None),
    course_id: str | None = Query(default=None),
    room: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
) -> WeeklyTimetableOut:
    grouped = service.weekly_timetable(teacher_id=teacher_id, course_id=course_id, room=room)
    return WeeklyTimetableOut(timetable={day: _serialize(slots) for day, slots in grouped.items()})


@router.get("/pending", response_model=list[ScheduleOut])
def pending_schedules(
    current_user: User = Depends(APPROVER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    return _serialize(service.list_pending())


@router.post("/check-conflicts", response_model=ConflictCheckOut)
def check_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(SCHEDULER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> ConflictCheckOut:
    result = service.check_conflict(**payload.model_dump())
    return ConflictCheckOut(
        has_conflict=result.has_conflict,
        conflict_type=result.conflict_type,
        conflicting_schedule=(
            ScheduleOut.model_validate(result.conflicting_slot) if result.conflicting_slot is not None else None
        ),
        message=result.message,
    )


@router.get("/teachers/{teacher_id}", response_model=list[ScheduleOut])
def schedules_for_teacher(
    teacher_id: str,
    current_user: User = Depends(
        require_roles(UserRole.admin, UserRole.manager, UserRole.coordinator, UserRole.teacher)
    ),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    if current_user.role == UserRole.teacher and current_user.id != teacher_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teachers can only view their own schedule")
    return _serialize(service.list_by_teacher(teacher_id))


@router.get("/courses/{course_id}", response_model=list[ScheduleOut])
def schedules_for_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    return _serialize(service.list_by_course(course_id))


@router.get("/days/{day_of_week}", response_model=list[ScheduleOut])
def schedules_for_day(
    day_of_week: str,
    room: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    return _serialize(service.list_by_day_and_room(day_of_week, room))


@router.get("/{schedule_id}", response_model=ScheduleOut)
def get_schedule(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    return ScheduleOut.model_validate(service.get_slot(schedule_id))


@router.put("/{schedule_id}", response_model=ScheduleOut)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    current_user: User = Depends(SCHEDULER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    slot = service.update_slot(schedule_id, payload.model_dump(exclude_unset=True), actor=current_user)
    return ScheduleOut.model_validate(slot)


@router.delete("/{schedule_id}", response_model=ScheduleOut)
def deactivate_schedule(
    schedule_id: str,
    current_user: User = Depends(APPROVER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    return ScheduleOut.model_validate(service.deactivate_slot(schedule_id, actor=current_user))


@router.post("/{schedule_id}/approve", response_model=ScheduleOut)
def approve_schedule(
    schedule_id: str,
    payload: ApprovalDecision | None = None,
    current_user: User = Depends(APPROVER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    notes = payload.notes if payload else None
    return ScheduleOut.model_validate(service.approve_slot(schedule_id, actor=current_user, notes=notes))


@router.post("/{schedule_id}/reject", response_model=ScheduleOut)
def reject_schedule(
    schedule_id: str,
    payload: ApprovalDecision | None = None,
    current_user: User = Depends(APPROVER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    notes = payload.notes if payload else None
    return ScheduleOut.model_validate(service.reject_slot(schedule_id, actor=current_user, notes=notes))


@router.post("/{schedule_id}/generate-sessions", response_model=GenerationReportOut, status_code=status.HTTP_201_CREATED)
def generate_sessions(
    schedule_id: str,
    payload: GenerateSessionsRequest,
    current_user: User = Depends(SCHEDULER_DEPENDENCY),
    service: ScheduleService = Depends(get_schedule_service),
) -> GenerationReportOut:
    report = service.generate_instances(
        schedule_id,
        payload.start_date,
        payload.end_date,
        actor=current_user,
        on_existing=payload.on_existing,
    )
    return GenerationReportOut(
        schedule_id=report.schedule_id,
        count=report.count,
        skipped=report.skipped,
        dates=report.dates,
        failures=[GenerationFailureOut(date=item.date, error=item.error) for item in report.failures],
    )
