"""
auth/errors.py -- Error taxonomy for the user API.

Every failure the auth core can produce is an ApiError subclass carrying the
HTTP status, a machine-readable code, and the user-facing message. The
exception handlers in api/main.py render any ApiError in the standard
response envelope, so stores and dependencies raise these directly instead
of building HTTP responses.

Layer rule: no imports from fastapi, api/, or client/.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, errors: list[dict[str, str]] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(ApiError):
    status_code = 400
    code = "validation_error"
    default_message = "Validation failed"


class Unauthenticated(ApiError):
    status_code = 401
    code = "unauthorized"
    default_message = "No token provided, authorization denied"


class InvalidToken(Unauthenticated):
    """Bad signature, malformed token, or expired token -- never says which."""

    code = "invalid_token"
    default_message = "Invalid or expired token"


class InvalidCredentials(Unauthenticated):
    """Unknown email or wrong password -- never says which."""

    code = "bad_credentials"
    default_message = "Invalid email or password"


class Forbidden(ApiError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied. Insufficient permissions"


class NotFound(ApiError):
    status_code = 404
    code = "not_found"
    default_message = "User Not Found"


class DuplicateEmail(ApiError):
    # Existing clients expect 400 here, not 409.
    status_code = 400
    code = "conflict"
    default_message = "User with this email already exists"


class InternalError(ApiError):
    pass
