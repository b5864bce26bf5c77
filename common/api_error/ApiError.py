class AppError(Exception):
    """Base error for all application-specific issues."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class DatabaseError(AppError):
    """Specific for DB issues."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500, code="DATABASE_ERROR")


class ValidationError(AppError):
    """Malformed or missing input. Fixed by the caller, never retried."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message, status_code=400, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Referenced doctor, booking or exception does not exist (or is inactive)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404, code="NOT_FOUND")


class SlotConflictError(AppError):
    """
    The slot is held by a pending or confirmed booking.

    The caller should re-resolve availability and pick another slot.
    """

    def __init__(self, message: str = "Time slot is already booked"):
        super().__init__(message, status_code=409, code="SLOT_CONFLICT")


class ForbiddenTransitionError(AppError):
    """The actor may not move the booking to the requested status."""

    def __init__(self, message: str):
        super().__init__(message, status_code=403, code="FORBIDDEN_TRANSITION")


class InvalidStateError(AppError):
    """The booking is in a terminal status."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="INVALID_STATE")


class PermissionDeniedError(AppError):
    """The actor may not read or change this resource."""

    def __init__(self, message: str):
        super().__init__(message, status_code=403, code="PERMISSION_DENIED")


class ConfigurationError(RuntimeError):
    """Environment is missing a variable or holds an unusable value."""


__all__ = [
    "ConfigurationError",
    "AppError",
    "DatabaseError",
    "ValidationError",
    "NotFoundError",
    "SlotConflictError",
    "ForbiddenTransitionError",
    "InvalidStateError",
    "PermissionDeniedError",
]
