class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ScheduleValidationError(AppError):
    """Raised when a slot proposal is well-formed but not acceptable."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class FormatError(ScheduleValidationError):
    """Raised when a wall-clock time is not a strict HH:MM value."""
    def __init__(self, field: str, value: str):
        super().__init__(
            f"Invalid time format for {field}. Use HH:MM (e.g., 09:00)",
            details={"field": field, "value": value},
        )


class InvalidRangeError(ScheduleValidationError):
    """Raised when an end boundary does not come after its start boundary."""
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field} if field else None)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


NotFoundError = ResourceNotFoundError


class ConflictError(AppError):
    """Raised when a slot would double-book a teacher or a room."""
    def __init__(self, message: str, conflict_type: str, conflicting_slot: dict):
        self.conflict_type = conflict_type
        self.conflicting_slot = conflicting_slot
        super().__init__(
            message,
            status_code=409,
            details={"conflict_type": conflict_type, "conflicting_slot": conflicting_slot},
        )


class AuthorizationError(AppError):
    """Raised when the acting user may not perform a scheduling operation."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


class SlotStateError(AppError):
    """Raised when an operation is not allowed in the slot's current state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class ApprovalStateError(SlotStateError):
    """Raised when approving or rejecting a slot that is not awaiting review."""


class InstanceGenerationError(AppError):
    """Raised when fail-fast session generation aborts."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=500, details=details)


class DuplicateInstanceError(AppError):
    """Raised when generation would repeat an already materialised session."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)
