"""
BookSwap Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the different error scenarios.
Why:   Services raise these instead of building responses; the global
       handlers registered in main.py turn them into JSON with the right
       HTTP status, so routes stay free of try/except plumbing.
How:   Each exception carries an `ErrorInfo` from `bookswap.errors` (code +
       user-facing message), an HTTP status, and an optional context dict.

Exception Hierarchy:
    BookSwapError (base)            → 500
    ├── ValidationError             → 400 Bad Request
    ├── AuthenticationError         → 401 Unauthorized
    ├── PermissionDeniedError       → 403 Forbidden
    ├── NotFoundError               → 404 Not Found
    ├── ConflictError               → 409 Conflict
    ├── RateLimitExceededError      → 429 Too Many Requests
    ├── DatabaseError               → 500 Internal Server Error
    └── MailDeliveryError           → 502 Bad Gateway (SMTP upstream failed)
"""

from typing import Any, Dict, Optional

from bookswap import errors
from bookswap.errors import ErrorInfo


class BookSwapError(Exception):
    """
    Base exception for all BookSwap application errors.

    Attributes:
        error:    Code + message pair returned to the client
        context:  Extra details. Returned under "details" for 4xx errors,
                  logged only for 5xx errors.
    """

    status_code = 500
    default_error = errors.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        error: Optional[ErrorInfo] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.error = error or self.default_error
        self.context = context or {}
        super().__init__(self.error.message)

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


class ValidationError(BookSwapError):
    """
    Client input broke a business rule (weak password, malformed email,
    unknown book state, rating outside 1..5).

    Schema-level problems are caught earlier by FastAPI and reported with the
    same 400 shape by the RequestValidationError handler.
    """

    status_code = 400
    default_error = errors.BAD_REQUEST

    def __init__(
        self,
        error: Optional[ErrorInfo] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(error=error, context=ctx)
        self.field = field


class AuthenticationError(BookSwapError):
    """Missing, invalid, or expired credentials."""

    status_code = 401
    default_error = errors.UNAUTHENTICATED


class PermissionDeniedError(BookSwapError):
    """The caller is authenticated but may not touch this resource."""

    status_code = 403
    default_error = errors.UNAUTHORIZED


class NotFoundError(BookSwapError):
    """
    A requested record does not exist.

    SQLAlchemy returns None for missing rows; the service layer converts
    that None into this exception so routes never branch on it.
    """

    status_code = 404
    default_error = errors.NOT_FOUND

    def __init__(
        self,
        error: Optional[ErrorInfo] = None,
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(error=error, context=ctx)


class ConflictError(BookSwapError):
    """A uniqueness rule was violated (e.g. an email that is already registered)."""

    status_code = 409
    default_error = errors.USER_ALREADY_EXISTS


class RateLimitExceededError(BookSwapError):
    """The client exceeded its per-IP request budget."""

    status_code = 429
    default_error = errors.RATE_LIMITED

    def __init__(self, retry_after: int = 60, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(context=ctx)
        self.retry_after = retry_after


class DatabaseError(BookSwapError):
    """
    A query or commit failed unexpectedly.

    The client always receives the generic INTERNAL_SERVER_ERROR message;
    the context (operation, exception type) goes to the server log only.
    """

    status_code = 500
    default_error = errors.INTERNAL_SERVER_ERROR


class MailDeliveryError(BookSwapError):
    """The SMTP server rejected or never accepted a message after all retries."""

    status_code = 502
    default_error = errors.EMAIL_COULD_NOT_BE_SENT
