"""
models.py — Domain records for the Shift Assignment Engine

Directory records (StaffMember, Department, DutyPosition) are read-only
inputs. ShiftAssignment and Request are owned by their repositories.
Every record round-trips through to_dict() / from_dict() for JSON transport.
"""

from dataclasses import asdict, dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from shift_engine.date_utils import parse_date, parse_datetime
from shift_engine.errors import ValidationError


class StaffRole(Enum):
    ADMINISTRATOR = "administrator"
    STAFF = "staff"


class ShiftStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestType(Enum):
    LEAVE = "leave"
    SWAP = "swap"
    PREFERENCE = "preference"


class RequestStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ReviewDecision(Enum):
    APPROVE = "approve"
    REJECT = "reject"


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def coerce_enum(enum_cls, raw: Any):
    """Enum member from a member or its (case-insensitive) value; ValidationError otherwise."""
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid {enum_cls.__name__}: {raw!r}", value=raw) from None


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    department_id: str
    role: StaffRole = StaffRole.STAFF
    active: bool = True
    email: str = ""
    position: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StaffMember":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            department_id=str(data["department_id"]),
            role=coerce_enum(StaffRole, data.get("role", StaffRole.STAFF)),
            active=bool(data.get("active", True)),
            email=str(data.get("email") or ""),
            position=str(data.get("position") or ""),
        )


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    default_shift_hours: int = 24
    requires_weekend_coverage: bool = False
    requires_holiday_coverage: bool = False
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Department":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            default_shift_hours=int(data.get("default_shift_hours", 24)),
            requires_weekend_coverage=bool(data.get("requires_weekend_coverage", False)),
            requires_holiday_coverage=bool(data.get("requires_holiday_coverage", False)),
            active=bool(data.get("active", True)),
        )


@dataclass(frozen=True)
class DutyPosition:
    """A schedulable slot ("room") inside a department."""

    id: str
    department_id: str
    name: str = ""
    is_emergency: bool = False
    active: bool = True
    seniority_required: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DutyPosition":
        return cls(
            id=str(data["id"]),
            department_id=str(data["department_id"]),
            name=str(data.get("name") or ""),
            is_emergency=bool(data.get("is_emergency", False)),
            active=bool(data.get("active", True)),
            seniority_required=data.get("seniority_required") or None,
        )


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------

@dataclass
class ShiftDraft:
    """Input for a new assignment. is_emergency=None inherits the position flag."""

    room_id: str
    user_id: str
    start: datetime
    end: datetime
    is_emergency: Optional[bool] = None
    notes: Optional[str] = None
    status: Optional[ShiftStatus] = None


@dataclass
class ShiftAssignment:
    id: Optional[str]
    room_id: str
    user_id: str
    start: datetime
    end: datetime
    is_emergency: bool = False
    status: ShiftStatus = ShiftStatus.DRAFT
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is not ShiftStatus.CANCELLED

    def copy(self, **changes: Any) -> "ShiftAssignment":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":           self.id,
            "room_id":      self.room_id,
            "user_id":      self.user_id,
            "start":        _iso(self.start),
            "end":          _iso(self.end),
            "is_emergency": self.is_emergency,
            "status":       self.status.value,
            "notes":        self.notes,
            "created_by":   self.created_by,
            "created_at":   _iso(self.created_at),
            "updated_at":   _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShiftAssignment":
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            room_id=str(data["room_id"]),
            user_id=str(data["user_id"]),
            start=parse_datetime(data["start"]),
            end=parse_datetime(data["end"]),
            is_emergency=bool(data.get("is_emergency", False)),
            status=coerce_enum(ShiftStatus, data.get("status", ShiftStatus.DRAFT)),
            notes=data.get("notes"),
            created_by=data.get("created_by"),
            created_at=parse_datetime(data["created_at"]) if data.get("created_at") else None,
            updated_at=parse_datetime(data["updated_at"]) if data.get("updated_at") else None,
        )


# Fields a ShiftPatch may carry
PATCHABLE_FIELDS = ("room_id", "user_id", "start", "end", "is_emergency", "notes", "status")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass
class RequestDraft:
    user_id: str
    type: RequestType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    swap_shift_id: Optional[str] = None
    swap_with_user_id: Optional[str] = None


@dataclass
class Request:
    id: str
    user_id: str
    type: RequestType
    start_date: date
    end_date: date
    status: RequestStatus = RequestStatus.PENDING
    reason: Optional[str] = None
    swap_shift_id: Optional[str] = None
    swap_with_user_id: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def copy(self, **changes: Any) -> "Request":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":                self.id,
            "user_id":           self.user_id,
            "type":              self.type.value,
            "status":            self.status.value,
            "start_date":        _iso(self.start_date),
            "end_date":          _iso(self.end_date),
            "reason":            self.reason,
            "swap_shift_id":     self.swap_shift_id,
            "swap_with_user_id": self.swap_with_user_id,
            "reviewed_by":       self.reviewed_by,
            "reviewed_at":       _iso(self.reviewed_at),
            "review_notes":      self.review_notes,
            "created_at":        _iso(self.created_at),
            "updated_at":        _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Request":
        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            type=coerce_enum(RequestType, data["type"]),
            status=coerce_enum(RequestStatus, data.get("status", RequestStatus.PENDING)),
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data["end_date"]),
            reason=data.get("reason"),
            swap_shift_id=data.get("swap_shift_id"),
            swap_with_user_id=data.get("swap_with_user_id"),
            reviewed_by=data.get("reviewed_by"),
            reviewed_at=parse_datetime(data["reviewed_at"]) if data.get("reviewed_at") else None,
            review_notes=data.get("review_notes"),
            created_at=parse_datetime(data["created_at"]) if data.get("created_at") else None,
            updated_at=parse_datetime(data["updated_at"]) if data.get("updated_at") else None,
        )


@dataclass
class ScheduleGenRequest:
    department_id: str
    start_date: date
    num_days: int


@dataclass
class RequestReviewInput:
    request_id: str
    decision: ReviewDecision
    notes: Optional[str] = None
