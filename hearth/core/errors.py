"""
Error taxonomy.

Every domain failure is a HearthError carrying the HTTP status it maps to
and a short machine-readable code. The API layer turns these into JSON
responses; nothing below the API layer knows about HTTP.
"""

from __future__ import annotations


class HearthError(Exception):
    """Base exception for domain errors."""

    status_code: int = 500
    default_code: str = "error"
    default_message: str = "Server error"

    def __init__(self, code: str | None = None, message: str | None = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r})"


class AuthError(HearthError):
    """Identity cannot be established."""

    status_code = 401
    default_code = "invalid_token"
    default_message = "Token is not valid"


class ForbiddenError(HearthError):
    """Identity is known but the action is disallowed."""

    status_code = 403
    default_code = "forbidden"
    default_message = "Forbidden"


class ValidationError(HearthError):
    """Input is malformed or violates a field-level policy."""

    status_code = 400
    default_code = "validation_error"
    default_message = "Invalid request"


class NotFoundError(HearthError):
    """Resource does not exist, or belongs to another family."""

    status_code = 404
    default_code = "not_found"
    default_message = "Not found"


class ConflictError(HearthError):
    """Operation would break a referential invariant."""

    status_code = 409
    default_code = "conflict"
    default_message = "Conflict"


class IntegrityError(HearthError):
    """Persisted state is internally inconsistent."""

    status_code = 500
    default_code = "integrity_error"
    default_message = "Stored data is inconsistent"


class StoreUnavailableError(HearthError):
    """The backing store did not answer in time."""

    status_code = 503
    default_code = "store_unavailable"
    default_message = "Storage temporarily unavailable, please retry"
