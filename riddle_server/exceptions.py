"""
Riddle Server — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries an ErrorKind tag, a client-safe message and an
       optional context dict (logged server-side, returned only where the
       handler chooses to). The single boundary handler registered in
       main.py maps ErrorKind → HTTP status through an exhaustive table.
Who:   Raised by services and access-control dependencies; caught at the
       request boundary. The auth service also *returns* these (inside an
       AuthOutcome) for expected business failures.

Exception Hierarchy:
    RiddleServerError (base)
    ├── InvalidInputError        → 400 Bad Request
    ├── UnauthorizedError        → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── InternalFailureError     → 500 Internal Server Error
        ├── DatabaseError
        └── ConfigurationError
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of error categories; the value is the wire error code."""

    INVALID_INPUT = "validation_error"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limit_exceeded"
    INTERNAL_FAILURE = "internal_server_error"


# Must cover every ErrorKind member; checked at import time below.
STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL_FAILURE: 500,
}

_missing = set(ErrorKind) - set(STATUS_CODES)
if _missing:
    raise RuntimeError(f"ErrorKind members without a status code: {sorted(k.name for k in _missing)}")


class RiddleServerError(Exception):
    """
    Base exception for all Riddle Server application errors.

    Attributes:
        kind:     ErrorKind tag used by the boundary handler
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, not always returned)
    """

    kind: ErrorKind = ErrorKind.INTERNAL_FAILURE

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_payload(self, request_id: str = "", include_details: bool = True) -> Dict[str, Any]:
        """Serialize into the standard error body (see schemas.common.ErrorResponse)."""
        payload: Dict[str, Any] = {
            "error": self.kind.value,
            "message": self.message,
        }
        if include_details and self.context:
            payload["details"] = self.context
        payload["request_id"] = request_id
        return payload


class InvalidInputError(RiddleServerError):
    """
    Raised when client input fails validation.

    When:    Short username/password, empty password to hash, malformed
             riddle id, empty riddle batch.
    HTTP:    400 Bad Request
    """

    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(RiddleServerError):
    """
    Raised when the caller's identity cannot be established.

    Reasons (stored in `reason` and in the context):
        missing    no token supplied to a protected route
        malformed  token is not a string
        invalid    bad signature or structure
        expired    past the `exp` claim
        credentials wrong username/password
        legacy     account has no password hash
        stale      user deleted or role changed since issuance
    HTTP:    401 Unauthorized
    """

    kind = ErrorKind.UNAUTHORIZED

    def __init__(
        self,
        message: str = "Authentication required",
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class ForbiddenError(RiddleServerError):
    """
    Raised when an authenticated caller lacks the required role.

    HTTP:    403 Forbidden
    """

    kind = ErrorKind.FORBIDDEN

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RiddleServerError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert
    None → NotFoundError so routes stay free of existence checks.
    HTTP:    404 Not Found
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
            if resource_id:
                message = f"{resource.capitalize()} '{resource_id}' not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(RiddleServerError):
    """
    Raised when a write collides with existing state.

    When:    Duplicate username, detected either by the pre-insert lookup
             or by the database unique constraint.
    HTTP:    409 Conflict
    """

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(RiddleServerError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class InternalFailureError(RiddleServerError):
    """
    Raised for failures the client cannot fix.

    HTTP:    500 Internal Server Error
    The response message is always generic; context is logged only.
    """

    kind = ErrorKind.INTERNAL_FAILURE


class DatabaseError(InternalFailureError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        Detailed error info (SQL, constraint names) stays in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(InternalFailureError):
    """Raised when a required setting (e.g. JWT_SECRET) is missing at use time."""

    def __init__(
        self,
        message: str = "Server is not configured correctly",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
