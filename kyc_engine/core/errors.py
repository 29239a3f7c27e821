"""
Engine Errors.

Every failure the verification engine surfaces carries an ErrorKind so the
HTTP layer (or any other caller) can map it without string matching:

- VALIDATION_FAILED: bad input shape, missing rejection reason
- INVALID_TRANSITION: illegal state change for the document's lifecycle
- CONFLICT: a concurrent write won the race (refresh and retry)
- NOT_FOUND: unknown document or catalog purpose
- INVALID_TYPE: document type unknown to the active catalog
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TYPE = "INVALID_TYPE"


class KycError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        kind: ErrorKind used by callers to branch on the failure.
        message: Actionable human-readable description.
        details: Extra context (document id, statuses, field names).
    """

    kind: ErrorKind = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.kind.value,
            "detail": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class ValidationFailedError(KycError):
    kind = ErrorKind.VALIDATION_FAILED


class InvalidTransitionError(KycError):
    kind = ErrorKind.INVALID_TRANSITION


class ConflictError(KycError):
    """Lost an optimistic-concurrency race. Callers should re-read and retry."""
    kind = ErrorKind.CONFLICT


class NotFoundError(KycError):
    kind = ErrorKind.NOT_FOUND


class InvalidTypeError(KycError):
    kind = ErrorKind.INVALID_TYPE


class CatalogDefinitionError(KycError):
    """A requirement catalog that breaks its own invariants (raised at load time)."""
    kind = ErrorKind.VALIDATION_FAILED
