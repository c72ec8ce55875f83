from __future__ import annotations

from typing import Protocol

from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, ResourceNotFoundError, ScheduleValidationError
from app.models.course import Course
from app.models.user import APPROVER_ROLES, SCHEDULER_ROLES, User, UserRole


class SchedulingDirectory(Protocol):
    """Identity and course lookups the scheduler delegates to."""

    def ensure_scheduler(self, actor: User) -> None: ...

    def ensure_approver(self, actor: User) -> None: ...

    def get_course(self, course_id: str) -> Course: ...

    def get_teacher(self, teacher_id: str) -> User: ...

    def ensure_assignment(self, course: Course, teacher: User) -> None: ...


class SqlSchedulingDirectory:
    def __init__(self, db: Session, *, enforce_assignment: bool = True) -> None:
        self.db = db
        self.enforce_assignment = enforce_assignment

    def ensure_scheduler(self, actor: User) -> None:
        if not actor.is_active:
            raise AuthorizationError("User account is not active")
        if actor.role not in SCHEDULER_ROLES:
            raise AuthorizationError("Only admins, managers, and coordinators can manage schedules")

    def ensure_approver(self, actor: User) -> None:
        if not actor.is_active:
            raise AuthorizationError("User account is not active")
        if actor.role not in APPROVER_ROLES:
            raise AuthorizationError("Only admins and managers can review schedules")

    def get_course(self, course_id: str) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise ResourceNotFoundError("Course", course_id)
        return course

    def get_teacher(self, teacher_id: str) -> User:
        teacher = self.db.get(User, teacher_id)
        if teacher is None:
            raise ResourceNotFoundError("Teacher", teacher_id)
        if teacher.role != UserRole.teacher:
            raise ScheduleValidationError("User is not a teacher", details={"teacher_id": teacher_id})
        if not teacher.is_active:
            raise ScheduleValidationError("Teacher account is not active", details={"teacher_id": teacher_id})
        return teacher

    def ensure_assignment(self, course: Course, teacher: User) -> None:
        if not self.enforce_assignment or course.teacher_id is None:
            return
        if course.teacher_id != teacher.id:
            raise ScheduleValidationError(
                "Teacher is not assigned to this course",
                details={"course_id": course.id, "teacher_id": teacher.id},
            )
