from datetime import date

from app.models.schedule import DAY_ORDER, ApprovalStatus, DayOfWeek, Schedule
from app.services.session_sink import SessionDraft


def make_slot(
    slot_id: str,
    *,
    teacher_id: str = "t1",
    course_id: str = "c1",
    day: DayOfWeek = DayOfWeek.monday,
    start: str = "09:00",
    end: str = "10:00",
    room: str | None = None,
    is_active: bool = True,
    **extra,
) -> Schedule:
    return Schedule(
        id=slot_id,
        class_id=extra.pop("class_id", "class-1"),
        course_id=course_id,
        teacher_id=teacher_id,
        day_of_week=day,
        start_time=start,
        end_time=end,
        room=room,
        is_active=is_active,
        requires_approval=extra.pop("requires_approval", False),
        created_by_id=extra.pop("created_by_id", "admin"),
        **extra,
    )


class InMemoryScheduleStore:
    def __init__(self, slots=()) -> None:
        self.slots = {slot.id: slot for slot in slots}
        self.locks: list[tuple] = []

    def get(self, slot_id):
        return self.slots.get(slot_id)

    def add(self, slot):
        self.slots[slot.id] = slot
        return slot

    def find(self, *, teacher_id=None, course_id=None, day_of_week=None, room=None, is_active=True, exclude_id=None):
        matches = [
            slot
            for slot in self.slots.values()
            if (teacher_id is None or slot.teacher_id == teacher_id)
            and (course_id is None or slot.course_id == course_id)
            and (day_of_week is None or slot.day_of_week == day_of_week)
            and (room is None or slot.room == room)
            and (is_active is None or slot.is_active == is_active)
            and (exclude_id is None or slot.id != exclude_id)
        ]
        return sorted(matches, key=lambda slot: (DAY_ORDER.index(slot.day_of_week), slot.start_time))

    def find_pending(self):
        return [slot for slot in self.slots.values() if slot.approval_status == ApprovalStatus.pending]

    def lock_window(self, *, teacher_id, day_of_week, room=None):
        self.locks.append((teacher_id, day_of_week, room))


class RecordingSink:
    def __init__(self, existing: set[tuple[str, date]] | None = None, fail_on: set[date] | None = None) -> None:
        self.existing = set(existing or ())
        self.fail_on = set(fail_on or ())
        self.created: list[SessionDraft] = []
        self.isolated_calls: list[bool] = []

    def exists(self, schedule_id, scheduled_date):
        return (schedule_id, scheduled_date) in self.existing

    def create(self, draft, *, isolated=False):
        self.isolated_calls.append(isolated)
        if draft.scheduled_date in self.fail_on:
            raise RuntimeError(f"insert rejected for {draft.scheduled_date.isoformat()}")
        self.created.append(draft)
        self.existing.add((draft.schedule_id, draft.scheduled_date))
        return f"session-{len(self.created)}"
