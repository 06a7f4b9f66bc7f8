"""Custom exception classes for the application."""
from typing import Any


class AppException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class NotFoundError(AppException):
    """Resource not found."""
    pass


class ValidationError(AppException):
    """Submitted data failed validation. Raised before anything is persisted."""
    pass


class InvalidDriveLinkError(ValidationError):
    """A drive link was supplied but does not point at a supported document host."""
    pass


class OwnerIdentityError(ValidationError):
    """Owner email could not be determined from the session or the request."""
    pass


class StateConflictError(AppException):
    """Listing is not in the state the operation requires (e.g. deciding a non-pending listing)."""
    pass


class AuthenticationRequiredError(AppException):
    """Operation needs an authenticated caller."""
    pass


class StorageError(AppException):
    """Blob storage failed to store or delete a file."""
    pass


class NotificationError(AppException):
    """Decision notification could not be delivered."""
    pass
