"""Application errors.

Batch jobs (jornada close, bulk settlement, ingestion) catch these per item
and report them; single operations let them propagate to the caller, where
the API maps them to an HTTP status via ``status_code``.
"""

from typing import Optional


class AppError(Exception):
    """Base error carrying an HTTP status and a machine-readable code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class UnsupportedBetTypeError(ValidationError):
    """Raised when no predicate can evaluate a bet's type/label pair."""

    code = "UNSUPPORTED_BET_TYPE"
