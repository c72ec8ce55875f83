from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import event

from app.core.config import Settings
from app.core.exceptions import (
    ApprovalStateError,
    AuthorizationError,
    ConflictError,
    FormatError,
    InstanceGenerationError,
    InvalidRangeError,
    ResourceNotFoundError,
    ScheduleValidationError,
    SlotStateError,
)
from app.models.class_session import ClassSession
from app.models.course import Course
from app.models.schedule import ApprovalStatus, DayOfWeek
from app.models.user import UserRole
from app.services.schedules import ScheduleService


@pytest.fixture()
def people(make_user):
    return {
        "admin": make_user(UserRole.admin),
        "manager": make_user(UserRole.manager),
        "coordinator": make_user(UserRole.coordinator),
        "t1": make_user(UserRole.teacher, "t1@example.com"),
        "t2": make_user(UserRole.teacher, "t2@example.com"),
        "student": make_user(UserRole.student),
    }


@pytest.fixture()
def courses(make_course):
    return {"math": make_course("MATH101"), "phys": make_course("PHYS101")}


def _service(db_session, **overrides) -> ScheduleService:
    return ScheduleService(db_session, settings=Settings(**overrides))


def _create(service, actor, teacher, course, **fields):
    payload = {
        "class_id": "class-1",
        "course_id": course.id,
        "teacher_id": teacher.id,
        "day_of_week": "monday",
        "start_time": "09:00",
        "end_time": "10:00",
    }
    payload.update(fields)
    return service.create_slot(actor=actor, **payload)


def test_create_slot_persists_active_slot(db_session, people, courses):
    service = _service(db_session)
    slot = _create(service, people["coordinator"], people["t1"], courses["math"], room=" 101 ", building="")
    assert slot.id
    assert slot.is_active is True
    assert slot.approval_status is None
    assert slot.room == "101"
    assert slot.building is None
    assert slot.created_by_id == people["coordinator"].id
    assert slot.duration_minutes == 60


def test_create_rejects_bad_input(db_session, people, courses):
    service = _service(db_session)
    with pytest.raises(FormatError):
        _create(service, people["admin"], people["t1"], courses["math"], start_time="9:00")
    with pytest.raises(InvalidRangeError):
        _create(service, people["admin"], people["t1"], courses["math"], start_time="10:00", end_time="09:00")
    with pytest.raises(InvalidRangeError):
        _create(
            service,
            people["admin"],
            people["t1"],
            courses["math"],
            effective_from=date(2024, 3, 10),
            effective_to=date(2024, 3, 1),
        )
    with pytest.raises(ScheduleValidationError):
        _create(service, people["admin"], people["t1"], courses["math"], day_of_week="funday")


def test_create_requires_scheduling_role(db_session, people, courses):
    service = _service(db_session)
    for role in ("t1", "student"):
        with pytest.raises(AuthorizationError):
            _create(service, people[role], people["t1"], courses["math"])


def test_create_validates_collaborators(db_session, people, courses, make_course):
    service = _service(db_session)
    with pytest.raises(ResourceNotFoundError) as exc_info:
        _create(service, people["admin"], people["t1"], SimpleNamespace(id="nope"))
    assert exc_info.value.details["resource_type"] == "Course"
    with pytest.raises(ScheduleValidationError):
        _create(service, people["admin"], people["student"], courses["math"])

    assigned = make_course("CHEM101", teacher=people["t2"])
    with pytest.raises(ScheduleValidationError) as assignment_error:
        _create(service, people["admin"], people["t1"], assigned)
    assert assignment_error.value.message == "Teacher is not assigned to this course"

    relaxed = _service(db_session, enforce_course_teacher_assignment=False)
    assert _create(relaxed, people["admin"], people["t1"], assigned).course_id == assigned.id


def test_scenario_room_then_teacher_free_slot(db_session, people, courses):
    service = _service(db_session)
    slot_a = _create(service, people["admin"], people["t1"], courses["math"], room="101")

    with pytest.raises(ConflictError) as exc_info:
        _create(
            service,
            people["admin"],
            people["t2"],
            courses["phys"],
            start_time="09:30",
            end_time="10:30",
            room="101",
        )
    assert exc_info.value.conflict_type == "room"
    assert exc_info.value.conflicting_slot["id"] == slot_a.id

    slot_c = _create(
        service,
        people["admin"],
        people["t1"],
        courses["math"],
        start_time="10:00",
        end_time="11:00",
        room="102",
    )
    assert slot_c.is_active
    assert len(service.list_by_day_and_room("monday")) == 2


def test_teacher_double_booking_is_rejected(db_session, people, courses):
    service = _service(db_session)
    _create(service, people["admin"], people["t1"], courses["math"])
    with pytest.raises(ConflictError) as exc_info:
        _create(service, people["admin"], people["t1"], courses["phys"], start_time="09:59", end_time="11:00")
    assert exc_info.value.conflict_type == "teacher"


def test_update_does_not_conflict_with_itself(db_session, people, courses):
    service = _service(db_session)
    slot = _create(service, people["admin"], people["t1"], courses["math"], room="101")
    updated = service.update_slot(slot.id, {"end_time": "10:30", "notes": "  extended "}, actor=people["coordinator"])
    assert updated.end_time == "10:30"
    assert updated.notes == "extended"
    assert updated.updated_by_id == people["coordinator"].id


def test_conflicting_update_changes_nothing(db_session, people, courses):
    service = _service(db_session)
    _create(service, people["admin"], people["t2"], courses["phys"], room="101", start_time="11:00", end_time="12:00")
    slot = _create(service, people["admin"], people["t1"], courses["math"], room="101")
    with pytest.raises(ConflictError):
        service.update_slot(slot.id, {"start_time": "10:30", "end_time": "11:30"}, actor=people["admin"])
    reloaded = service.get_slot(slot.id)
    assert (reloaded.start_time, reloaded.end_time) == ("09:00", "10:00")


def test_update_rejects_inverted_times(db_session, people, courses):
    service = _service(db_session)
    slot = _create(service, people["admin"], people["t1"], courses["math"])
    with pytest.raises(InvalidRangeError):
        service.update_slot(slot.id, {"end_time": "08:00"}, actor=people["admin"])


def test_deactivate_is_a_soft_delete(db_session, people, courses):
    service = _service(db_session)
    slot = _create(service, people["admin"], people["t1"], courses["math"], room="101")
    service.deactivate_slot(slot.id, actor=people["manager"])
    assert service.get_slot(slot.id).is_active is False

    # The window is free again once the slot is gone.
    replacement = _create(service, people["admin"], people["t1"], courses["math"], room="101")
    assert replacement.is_active

    with pytest.raises(SlotStateError):
        service.deactivate_slot(slot.id, actor=people["manager"])
    with pytest.raises(SlotStateError):
        service.update_slot(slot.id, {"room": "102"}, actor=people["manager"])


def test_missing_slot(db_session, people):
    service = _service(db_session)
    with pytest.raises(ResourceNotFoundError):
        service.get_slot("missing")
    with pytest.raises(ResourceNotFoundError):
        service.update_slot("missing", {"room": "1"}, actor=people["admin"])


def test_pending_slots_do_not_block_and_are_rechecked_on_approval(db_session, people, courses):
    service = _service(db_session, schedule_requires_approval=True)
    pending = _create(service, people["coordinator"], people["t1"], courses["math"], room="101")
    assert pending.is_active is False
    assert pending.approval_status == ApprovalStatus.pending
    assert [slot.id for slot in service.list_pending()] == [pending.id]

    auto = _create(service, people["admin"], people["t1"], courses["phys"], room="102")
    assert auto.approval_status == ApprovalStatus.auto_approved
    assert auto.is_active

    with pytest.raises(ConflictError):
        service.approve_slot(pending.id, actor=people["manager"])
    assert service.get_slot(pending.id).approval_status == ApprovalStatus.pending

    rejected = service.reject_slot(pending.id, actor=people["manager"], notes="Clashes with PHYS101")
    assert rejected.approval_status == ApprovalStatus.rejected
    assert rejected.approval_notes == "Clashes with PHYS101"
    with pytest.raises(SlotStateError):
        service.update_slot(pending.id, {"room": "103"}, actor=people["admin"])


def test_approve_pending_slot(db_session, people, courses):
    service = _service(db_session, schedule_requires_approval=True)
    pending = _create(service, people["coordinator"], people["t1"], courses["math"])
    with pytest.raises(AuthorizationError):
        service.approve_slot(pending.id, actor=people["coordinator"])
    approved = service.approve_slot(pending.id, actor=people["admin"], notes=" ok ")
    assert approved.is_active
    assert approved.approval_status == ApprovalStatus.approved
    assert approved.approved_by_id == people["admin"].id
    assert approved.approval_notes == "ok"
    with pytest.raises(ApprovalStateError):
        service.approve_slot(pending.id, actor=people["admin"])


def test_approving_slot_without_gate_fails(db_session, people, courses):
    service = _service(db_session)
    slot = _create(service, people["admin"], people["t1"], courses["math"])
    with pytest.raises(ApprovalStateError):
        service.approve_slot(slot.id, actor=people["admin"])


def test_per_slot_approval_override(db_session, people, courses):
    service = _service(db_session)
    slot = _create(service, people["coordinator"], people["t1"], courses["math"], requires_approval=True)
    assert slot.requires_approval is True
    assert slot.approval_status == ApprovalStatus.pending


def test_queries_and_weekly_timetable(db_session, people, courses):
    service = _service(db_session)
    _create(service, people["admin"], people["t1"], courses["math"], day_of_week="wednesday", start_time="13:00", end_time="14:00")
    _create(service, people["admin"], people["t1"], courses["math"], start_time="11:00", end_time="12:00", room="101")
    _create(service, people["admin"], people["t2"], courses["phys"], start_time="08:00", end_time="09:00", room="101")

    by_teacher = service.list_by_teacher(people["t1"].id)
    assert [(slot.day_of_week, slot.start_time) for slot in by_teacher] == [
        (DayOfWeek.monday, "11:00"),
        (DayOfWeek.wednesday, "13:00"),
    ]
    assert len(service.list_by_course(courses["phys"].id)) == 1
    assert [slot.start_time for slot in service.list_by_day_and_room("Monday", "101")] == ["08:00", "11:00"]

    timetable = service.weekly_timetable()
    assert list(timetable) == list(DayOfWeek)
    assert [slot.start_time for slot in timetable[DayOfWeek.monday]] == ["08:00", "11:00"]
    assert timetable[DayOfWeek.sunday] == []
    assert len(service.weekly_timetable(teacher_id=people["t2"].id)[DayOfWeek.monday]) == 1


def test_generate_instances_persists_sessions(db_session, people, courses):
    service = _service(db_session, schedule_timezone="UTC")
    slot = _create(service, people["admin"], people["t1"], courses["math"], room="101")

    report = service.generate_instances(slot.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["coordinator"])
    assert report.count == 4
    sessions = db_session.query(ClassSession).filter_by(schedule_id=slot.id).order_by(ClassSession.scheduled_date).all()
    assert [session.scheduled_date for session in sessions] == report.dates
    assert sessions[0].title == "Class for MATH101 on monday"
    assert sessions[0].duration_minutes == 60

    again = service.generate_instances(slot.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["coordinator"])
    assert again.count == 0
    assert again.skipped == 4
    assert db_session.query(ClassSession).filter_by(schedule_id=slot.id).count() == 4


def test_generate_instances_checks_actor_and_slot_state(db_session, people, courses):
    service = _service(db_session, schedule_requires_approval=True)
    pending = _create(service, people["coordinator"], people["t1"], courses["math"])
    with pytest.raises(AuthorizationError):
        service.generate_instances(pending.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["t1"])
    with pytest.raises(SlotStateError):
        service.generate_instances(pending.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["admin"])
    with pytest.raises(ResourceNotFoundError):
        service.generate_instances("missing", date(2024, 3, 1), date(2024, 3, 31), actor=people["admin"])


@pytest.mark.parametrize("field", ["class_id", "recurrence_type"])
def test_update_cannot_clear_required_fields(db_session, people, courses, field):
    service = _service(db_session)
    slot = _create(service, people["admin"], people["t1"], courses["math"])
    with pytest.raises(ScheduleValidationError) as exc_info:
        service.update_slot(slot.id, {field: None}, actor=people["admin"])
    assert exc_info.value.details == {"field": field}
    reloaded = service.get_slot(slot.id)
    assert reloaded.class_id == "class-1"
    assert reloaded.recurrence_type is not None


def _reject_session_on(db_session, rejected_date):
    def before_flush(session, flush_context, instances):
        for item in session.new:
            if isinstance(item, ClassSession) and item.scheduled_date == rejected_date:
                raise RuntimeError("insert rejected")

    event.listen(db_session, "before_flush", before_flush)


def test_best_effort_keeps_other_dates_when_one_insert_fails(db_session, people, courses):
    service = _service(db_session, instance_failure_policy="best_effort")
    slot = _create(service, people["admin"], people["t1"], courses["math"])
    _reject_session_on(db_session, date(2024, 3, 11))

    report = service.generate_instances(slot.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["admin"])

    assert report.count == 3
    assert [(failure.date, failure.error) for failure in report.failures] == [(date(2024, 3, 11), "insert rejected")]
    persisted = [
        row.scheduled_date
        for row in db_session.query(ClassSession).filter_by(schedule_id=slot.id).order_by(ClassSession.scheduled_date)
    ]
    assert persisted == [date(2024, 3, 4), date(2024, 3, 18), date(2024, 3, 25)]


def test_fail_fast_persists_nothing_from_the_call(db_session, people, courses):
    service = _service(db_session, instance_failure_policy="fail_fast")
    slot = _create(service, people["admin"], people["t1"], courses["math"])
    _reject_session_on(db_session, date(2024, 3, 11))

    with pytest.raises(InstanceGenerationError) as exc_info:
        service.generate_instances(slot.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["admin"])

    assert exc_info.value.details["date"] == "2024-03-11"
    assert db_session.query(ClassSession).count() == 0


def test_generation_validates_range_and_state_before_course_lookup(db_session, people, courses):
    service = _service(db_session, schedule_requires_approval=True)
    active = _create(service, people["admin"], people["t1"], courses["math"])
    pending = _create(service, people["coordinator"], people["t2"], courses["math"], day_of_week="tuesday")
    db_session.delete(db_session.get(Course, courses["math"].id))
    db_session.commit()

    with pytest.raises(InvalidRangeError):
        service.generate_instances(active.id, date(2024, 3, 31), date(2024, 3, 1), actor=people["admin"])
    with pytest.raises(SlotStateError):
        service.generate_instances(pending.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["admin"])
    with pytest.raises(ResourceNotFoundError) as exc_info:
        service.generate_instances(active.id, date(2024, 3, 1), date(2024, 3, 31), actor=people["admin"])
    assert exc_info.value.details["resource_type"] == "Course"
    assert db_session.query(ClassSession).count() == 0
