from app.core.result import Err, ErrorKind


class AppError(Exception):
    """Base class for all application exceptions."""
    kind: ErrorKind = ErrorKind.failure

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationFailedError(AppError):
    """Raised when a request is well formed but breaks a domain rule."""
    kind = ErrorKind.validation

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class ScheduleConflictError(AppError):
    """Raised when a schedule or enrollment change would double-book someone."""
    kind = ErrorKind.conflict

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class DuplicateResourceError(AppError):
    """Raised when a create or rename would break a uniqueness rule."""
    kind = ErrorKind.conflict

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    kind = ErrorKind.not_found

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=404, details=details)


class OperationFailedError(AppError):
    """Raised when persistence fails for a reason the caller cannot fix."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=500, details=details)


_ERRORS_BY_KIND: dict[ErrorKind, type[AppError]] = {
    ErrorKind.validation: ValidationFailedError,
    ErrorKind.conflict: ScheduleConflictError,
    ErrorKind.not_found: ResourceNotFoundError,
    ErrorKind.failure: OperationFailedError,
}


def error_from_result(result: Err) -> AppError:
    return _ERRORS_BY_KIND[result.kind](result.message, details=result.details)
