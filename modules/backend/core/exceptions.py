"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Messages are safe to return to callers; store and driver details are
logged where they occur and never carried in these exceptions.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class ForbiddenError(ApplicationError):
    """Raised when the caller may not act on the resource."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message, code="AUTHZ_FORBIDDEN")


class ConflictError(ApplicationError):
    """Raised when there is a state conflict."""

    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(message, code="RES_CONFLICT")


class ExpiredError(ApplicationError):
    """Raised when a note is read after its expiry instant."""

    def __init__(self, message: str = "Note expired") -> None:
        super().__init__(message, code="RES_EXPIRED")


class AttemptsExhaustedError(ApplicationError):
    """Raised when a note's failed-verification budget is spent."""

    def __init__(self, message: str = "Maximum access attempts exceeded") -> None:
        super().__init__(message, code="RES_ATTEMPTS_EXHAUSTED")


class StorageError(ApplicationError):
    """Raised when the note store is unavailable or times out. Retryable."""

    def __init__(self, message: str = "Storage unavailable") -> None:
        super().__init__(message, code="SYS_STORAGE_ERROR")
