"""
Custom Exceptions for the Attendance Integrity Service

This module defines the exception taxonomy raised by services and
translated into HTTP responses by the API error handlers.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    TOKEN_INVALID = "TOKEN_INVALID"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    MOCK_LOCATION_DETECTED = "MOCK_LOCATION_DETECTED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_COORDINATES = "INVALID_COORDINATES"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Attendance state errors
    ATTENDANCE_CONFLICT = "ATTENDANCE_CONFLICT"
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    EVENT_NOT_ACTIVE = "EVENT_NOT_ACTIVE"
    INVALID_STATE = "INVALID_STATE"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class ValidationError(BaseAppException):
    """Missing or invalid identifiers and coordinates"""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, error_code, details, 400)


class NotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Any] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
        details = {"resource_type": resource_type}
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


class AuthenticationError(BaseAppException):
    """Exception raised when authentication fails"""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details, 401)


class AuthorizationError(BaseAppException):
    """Exception raised when authorization fails"""

    def __init__(
        self,
        message: str = "Access denied",
        action: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.AUTHORIZATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if action:
            details["action"] = action
        super().__init__(message, error_code, details, 403)


class MockLocationRejected(AuthorizationError):
    """A client-asserted simulated position; always rejected"""

    def __init__(self, signal_id: Optional[str] = None):
        details = {"signal_id": signal_id} if signal_id else {}
        super().__init__(
            "Mock location detected. Location spoofing is not allowed.",
            action="report_location",
            error_code=ErrorCode.MOCK_LOCATION_DETECTED,
            details=details,
        )


class ConflictError(BaseAppException):
    """
    Attendance already exists for the (agent, event, day).

    An expected outcome of concurrent actors. ``existing`` is the winning
    record and ``attribution`` says who performed it.
    """

    def __init__(
        self,
        message: str,
        existing: Optional[Dict[str, Any]] = None,
        attribution: Optional[Dict[str, Any]] = None
    ):
        self.existing = existing
        self.attribution = attribution
        details = {
            "existing": existing,
            "attribution": attribution,
        }
        super().__init__(message, ErrorCode.ATTENDANCE_CONFLICT, details, 409)


class InvalidStateError(BaseAppException):
    """Operation not allowed from the current state"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_STATE,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details, 400)


class DatabaseError(BaseAppException):
    """Exception raised when database operations fail"""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        table: Optional[str] = None
    ):
        details = {
            "operation": operation,
            "table": table
        }
        super().__init__(message, ErrorCode.DATABASE_ERROR, details, 500)


class DuplicateEntryError(BaseAppException):
    """A uniqueness constraint rejected an insert"""

    def __init__(
        self,
        message: str = "Duplicate entry",
        table: Optional[str] = None
    ):
        super().__init__(message, ErrorCode.ATTENDANCE_CONFLICT, {"table": table}, 409)
