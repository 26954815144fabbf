"""
errors.py — Typed error kinds surfaced by the engine and request service

Every rejection is an expected business outcome, never a transient failure:
callers get a stable `kind` plus context (conflicting_id, date, staff, ...)
to build a message from. Nothing here is retried.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    DOUBLE_BOOKING = "DoubleBooking"
    MISSING_REST_DAY = "MissingRestDay"
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    NO_ELIGIBLE_STAFF = "NoEligibleStaff"
    VALIDATION_FAILED = "ValidationFailed"


class SchedulingError(Exception):
    kind: ErrorKind

    def __init__(self, message: str, kind: Optional[ErrorKind] = None, **context: Any):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        data = {"kind": self.kind.value, "message": self.message}
        data.update({k: str(v) for k, v in self.context.items()})
        return data

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class ConflictError(SchedulingError):
    """A candidate assignment breaks a conflict rule (double booking / rest day)."""

    def __init__(self, violation: Any):
        from shift_engine.constraints import VIOLATION_KINDS

        super().__init__(
            violation.description,
            kind=VIOLATION_KINDS[violation.constraint_type],
            conflicting_id=violation.conflicting_id,
            date=violation.date,
            staff=violation.staff,
        )
        self.violation = violation


class NotFoundError(SchedulingError):
    kind = ErrorKind.NOT_FOUND


class InvalidTransitionError(SchedulingError):
    kind = ErrorKind.INVALID_TRANSITION


class NoEligibleStaffError(SchedulingError):
    kind = ErrorKind.NO_ELIGIBLE_STAFF


class ValidationError(SchedulingError, ValueError):
    kind = ErrorKind.VALIDATION_FAILED
