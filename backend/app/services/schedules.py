from __future__ import annotations

import logging
from datetime import date
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AppError,
    InvalidRangeError,
    ResourceNotFoundError,
    ScheduleValidationError,
    SlotStateError,
)
from app.models.schedule import DAY_ORDER, ApprovalStatus, DayOfWeek, RecurrenceType, Schedule
from app.models.user import User
from app.services import approval
from app.services.conflicts import ConflictChecker, ConflictResult
from app.services.directory import SchedulingDirectory, SqlSchedulingDirectory
from app.services.recurrence import DuplicatePolicy, GenerationReport, InstanceGenerator
from app.services.schedule_store import ScheduleStore, SqlScheduleStore
from app.services.session_sink import SqlSessionInstanceSink
from app.services.time_intervals import validate_time_range

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "class_id",
    "day_of_week",
    "start_time",
    "end_time",
    "room",
    "building",
    "recurrence_type",
    "effective_from",
    "effective_to",
    "notes",
)
CONFLICT_FIELDS = {"day_of_week", "start_time", "end_time", "room"}


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def parse_day(value: DayOfWeek | str) -> DayOfWeek:
    if isinstance(value, DayOfWeek):
        return value
    try:
        return DayOfWeek(str(value).strip().lower())
    except ValueError as exc:
        raise ScheduleValidationError("Invalid day of week", details={"field": "day_of_week", "value": value}) from exc


def validate_effective_range(effective_from: date | None, effective_to: date | None) -> None:
    if effective_from and effective_to and effective_to <= effective_from:
        raise InvalidRangeError("Effective to date must be after effective from date", field="effective_to")


class ScheduleService:
    """Single write path for recurring slots.

    Every create, update and approval runs the conflict check and the write in
    the same transaction; callers get the persisted slot or an ``AppError``.
    """

    def __init__(
        self,
        db: Session,
        *,
        settings: Settings | None = None,
        store: ScheduleStore | None = None,
        directory: SchedulingDirectory | None = None,
        generator: InstanceGenerator | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.store = store or SqlScheduleStore(db)
        self.directory = directory or SqlSchedulingDirectory(
            db,
            enforce_assignment=self.settings.enforce_course_teacher_assignment,
        )
        self.checker = ConflictChecker(self.store)
        self.generator = generator or InstanceGenerator(
            self.store,
            SqlSessionInstanceSink(db),
            tz=ZoneInfo(self.settings.schedule_timezone),
            duplicate_policy=self.settings.instance_duplicate_policy,
            failure_policy=self.settings.instance_failure_policy,
            respect_effective_range=self.settings.generation_respects_effective_range,
            max_days=self.settings.max_generation_days,
        )

    def get_slot(self, slot_id: str) -> Schedule:
        slot = self.store.get(slot_id)
        if slot is None:
            raise ResourceNotFoundError("Schedule", slot_id)
        return slot

    def check_conflict(
        self,
        *,
        teacher_id: str,
        day_of_week: DayOfWeek | str,
        start_time: str,
        end_time: str,
        room: str | None = None,
        exclude_id: str | None = None,
    ) -> ConflictResult:
        return self.checker.check(
            teacher_id=teacher_id,
            day_of_week=parse_day(day_of_week),
            start_time=start_time,
            end_time=end_time,
            room=_normalize_text(room),
            exclude_id=exclude_id,
        )

    def create_slot(
        self,
        *,
        actor: User,
        class_id: str,
        course_id: str,
        teacher_id: str,
        day_of_week: DayOfWeek | str,
        start_time: str,
        end_time: str,
        room: str | None = None,
        building: str | None = None,
        recurrence_type: RecurrenceType | None = None,
        effective_from: date | None = None,
        effective_to: date | None = None,
        notes: str | None = None,
        requires_approval: bool | None = None,
    ) -> Schedule:
        self.directory.ensure_scheduler(actor)
        day = parse_day(day_of_week)
        validate_time_range(start_time, end_time)
        validate_effective_range(effective_from, effective_to)

        course = self.directory.get_course(course_id)
        teacher = self.directory.get_teacher(teacher_id)
        self.directory.ensure_assignment(course, teacher)

        room = _normalize_text(room)
        needs_approval = self.settings.schedule_requires_approval if requires_approval is None else requires_approval
        state = approval.initial_state(
            requires_approval=needs_approval,
            creator=actor,
            auto_approve_for_approvers=self.settings.auto_approve_for_approvers,
        )

        try:
            self.store.lock_window(teacher_id=teacher_id, day_of_week=day, room=room)
            self.checker.check(
                teacher_id=teacher_id,
                day_of_week=day,
                start_time=start_time,
                end_time=end_time,
                room=room,
            ).raise_for_conflict()

            slot = self.store.add(
                Schedule(
                    class_id=class_id,
                    course_id=course_id,
                    teacher_id=teacher_id,
                    day_of_week=day,
                    start_time=start_time,
                    end_time=end_time,
                    room=room,
                    building=_normalize_text(building),
                    recurrence_type=recurrence_type or RecurrenceType.weekly,
                    effective_from=effective_from,
                    effective_to=effective_to,
                    notes=_normalize_text(notes),
                    is_active=state.is_active,
                    requires_approval=needs_approval,
                    approval_status=state.approval_status,
                    created_by_id=actor.id,
                )
            )
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise

        self.db.refresh(slot)
        logger.info(
            "Schedule %s created by %s for teacher %s on %s %s-%s (status=%s)",
            slot.id,
            actor.id,
            teacher_id,
            day.value,
            start_time,
            end_time,
            slot.approval_status.value if slot.approval_status else "active",
        )
        return slot

    def update_slot(self, slot_id: str, changes: dict, *, actor: User) -> Schedule:
        self.directory.ensure_scheduler(actor)
        slot = self.get_slot(slot_id)
        if slot.approval_status == ApprovalStatus.rejected:
            raise SlotStateError("Rejected schedules cannot be modified", details={"schedule_id": slot.id})
        if not slot.is_active and not slot.is_pending_approval:
            raise SlotStateError("Deactivated schedules cannot be modified", details={"schedule_id": slot.id})

        data = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        if "day_of_week" in data:
            if data["day_of_week"] is None:
                raise ScheduleValidationError("day_of_week cannot be cleared", details={"field": "day_of_week"})
            data["day_of_week"] = parse_day(data["day_of_week"])
        for key in ("room", "building", "notes"):
            if key in data:
                data[key] = _normalize_text(data[key])
        for key in ("class_id", "start_time", "end_time", "recurrence_type"):
            if key in data and data[key] is None:
                raise ScheduleValidationError(f"{key} cannot be cleared", details={"field": key})

        new_day = data.get("day_of_week", slot.day_of_week)
        new_start = data.get("start_time", slot.start_time)
        new_end = data.get("end_time", slot.end_time)
        new_room = data["room"] if "room" in data else slot.room
        validate_time_range(new_start, new_end)
        validate_effective_range(
            data["effective_from"] if "effective_from" in data else slot.effective_from,
            data["effective_to"] if "effective_to" in data else slot.effective_to,
        )

        try:
            if CONFLICT_FIELDS & data.keys():
                self.store.lock_window(teacher_id=slot.teacher_id, day_of_week=new_day, room=new_room)
                self.checker.check(
                    teacher_id=slot.teacher_id,
                    day_of_week=new_day,
                    start_time=new_start,
                    end_time=new_end,
                    room=new_room,
                    exclude_id=slot.id,
                ).raise_for_conflict()

            for key, value in data.items():
                setattr(slot, key, value)
            if data:
                slot.updated_by_id = actor.id
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise

        self.db.refresh(slot)
        if data:
            logger.info("Schedule %s updated by %s: %s", slot.id, actor.id, ", ".join(sorted(data)))
        return slot

    def deactivate_slot(self, slot_id: str, *, actor: User) -> Schedule:
        self.directory.ensure_scheduler(actor)
        slot = self.get_slot(slot_id)
        if not slot.is_active:
            raise SlotStateError("Schedule is already inactive", details={"schedule_id": slot.id})
        slot.is_active = False
        slot.updated_by_id = actor.id
        self.db.commit()
        self.db.refresh(slot)
        logger.info("Schedule %s deactivated by %s", slot.id, actor.id)
        return slot

    def approve_slot(self, slot_id: str, *, actor: User, notes: str | None = None) -> Schedule:
        self.directory.ensure_approver(actor)
        slot = self.get_slot(slot_id)
        approval.ensure_pending(slot)
        try:
            # Another slot may have claimed the window while this one waited.
            self.store.lock_window(teacher_id=slot.teacher_id, day_of_week=slot.day_of_week, room=slot.room)
            self.checker.check(
                teacher_id=slot.teacher_id,
                day_of_week=slot.day_of_week,
                start_time=slot.start_time,
                end_time=slot.end_time,
                room=slot.room,
                exclude_id=slot.id,
            ).raise_for_conflict()
            approval.approve(slot, actor, _normalize_text(notes))
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        self.db.refresh(slot)
        logger.info("Schedule %s approved by %s", slot.id, actor.id)
        return slot

    def reject_slot(self, slot_id: str, *, actor: User, notes: str | None = None) -> Schedule:
        self.directory.ensure_approver(actor)
        slot = self.get_slot(slot_id)
        approval.reject(slot, actor, _normalize_text(notes))
        self.db.commit()
        self.db.refresh(slot)
        logger.info("Schedule %s rejected by %s", slot.id, actor.id)
        return slot

    def list_slots(
        self,
        *,
        teacher_id: str | None = None,
        course_id: str | None = None,
        day_of_week: DayOfWeek | str | None = None,
        room: str | None = None,
        is_active: bool | None = None,
    ) -> list[Schedule]:
        return self.store.find(
            teacher_id=teacher_id,
            course_id=course_id,
            day_of_week=parse_day(day_of_week) if day_of_week else None,
            room=_normalize_text(room),
            is_active=is_active,
        )

    def list_by_teacher(self, teacher_id: str) -> list[Schedule]:
        return self.store.find(teacher_id=teacher_id)

    def list_by_course(self, course_id: str) -> list[Schedule]:
        return self.store.find(course_id=course_id)

    def list_by_day_and_room(self, day_of_week: DayOfWeek | str, room: str | None = None) -> list[Schedule]:
        return self.store.find(day_of_week=parse_day(day_of_week), room=_normalize_text(room))

    def list_pending(self) -> list[Schedule]:
        return self.store.find_pending()

    def weekly_timetable(
        self,
        *,
        teacher_id: str | None = None,
        course_id: str | None = None,
        room: str | None = None,
    ) -> dict[DayOfWeek, list[Schedule]]:
        grouped: dict[DayOfWeek, list[Schedule]] = {day: [] for day in DAY_ORDER}
        for slot in self.store.find(teacher_id=teacher_id, course_id=course_id, room=_normalize_text(room)):
            grouped[slot.day_of_week].append(slot)
        for day in DAY_ORDER:
            grouped[day].sort(key=lambda item: item.start_time)
        return grouped

    def _session_title(self, slot: Schedule) -> str:
        course = self.directory.get_course(slot.course_id)
        return f"Class for {course.code} on {slot.day_of_week.value}"

    def generate_instances(
        self,
        slot_id: str,
        start_date: date,
        end_date: date,
        *,
        actor: User,
        on_existing: DuplicatePolicy | None = None,
    ) -> GenerationReport:
        self.directory.ensure_scheduler(actor)
        try:
            report = self.generator.generate(
                slot_id,
                start_date,
                end_date,
                on_existing=on_existing,
                title=self._session_title,
            )
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        return report


def build_schedule_service(db: Session) -> ScheduleService:
    return ScheduleService(db)
