from app.models.class_session import ClassSession, ClassSessionStatus, LocationType  # noqa: F401
from app.models.course import Course  # noqa: F401
from app.models.schedule import ApprovalStatus, DayOfWeek, RecurrenceType, Schedule  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
