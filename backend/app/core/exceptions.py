"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. A clear split between caller bugs, user-correctable input and
   business-rule rejections coming back from the store

IMPORTANT: NEVER use base Exception class. Always use custom exceptions.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: _jsonable(v)
            for k, v in self.context.items()
            if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


def _jsonable(value: Any) -> Any:
    # datetimes and dates show up in context for temporal rule failures
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


# ============================================================================
# Authorization Exceptions
# ============================================================================


class AuthorizationError(AppException):
    """
    Raised when the caller may not perform the action.

    WHY: Reviewing one's own timesheet is refused regardless of state.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "Insufficient permissions"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    WHY: Temporal, duration and description rule violations are
    user-correctable and are surfaced verbatim.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class EmptySelectionError(ValidationError):
    """
    Raised when a timesheet is requested with no entries selected.

    WHY: A timesheet is never created empty.

    HTTP Status: 400 Bad Request
    """

    default_message = "Please select at least one time entry"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class TimesheetNotFoundError(ResourceNotFoundError):
    """Raised when a timesheet doesn't exist for the caller."""

    default_message = "Timesheet not found"


class TimesheetAlreadyExistsError(AppException):
    """
    Raised when the user already has a timesheet for that week.

    WHY: Timesheets are unique per organization, user and week. A second
    tab or device racing on the same week hits the store's unique
    constraint and lands here.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "A timesheet already exists for this week"


# ============================================================================
# State Machine Exceptions
# ============================================================================


class InvalidStateError(AppException):
    """
    Raised when an illegal transition is attempted.

    WHY: Pausing an idle timer or approving a draft timesheet is a caller
    bug, not user input. It is always reported, never swallowed.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Invalid state transition"


class ConflictError(AppException):
    """
    Raised when starting a timer while a timer of another kind is active.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Another timer is already running. Stop it first."


# ============================================================================
# Time Tracking Business Rule Exceptions
# ============================================================================


class TimeEntryError(AppException):
    """
    Base exception for business-rule rejections of a time entry.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Time entry rejected"


class OverlapError(TimeEntryError):
    """
    Raised when the store reports an overlapping entry for the user.

    HTTP Status: 409 Conflict
    """

    default_message = "Time entry overlaps with existing entry"


class QuotaExceededError(TimeEntryError):
    """
    Raised when the organization's plan refuses another entry this month.

    WHY: Distinct from overlap so the caller can offer an upgrade instead
    of asking the user to fix their times.

    HTTP Status: 402 Payment Required
    """

    status_code = 402
    default_message = (
        "Monthly time entry limit reached. Upgrade to Pro for unlimited entries."
    )


class ConfirmationRequiredError(AppException):
    """
    Raised when a session is long enough to need explicit confirmation.

    WHY: Not a failure. The caller re-submits the same candidate with
    confirmation to proceed; declining aborts the save.

    HTTP Status: 428 Precondition Required
    """

    status_code = 428
    default_message = "This is a very long session (over 12 hours). Please confirm."


# ============================================================================
# Persistence Exceptions
# ============================================================================


class PersistenceError(AppException):
    """
    Raised when the persistence service fails (network, storage, driver).

    WHY: Wrapping driver errors keeps SQL out of responses. The core never
    retries; retry policy belongs to the store client.

    HTTP Status: 503 Service Unavailable
    """

    status_code = 503
    default_message = "Persistence service error"
