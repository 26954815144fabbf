"""
Shift Assignment Engine

Modules:
- models: staff, department, duty position, assignment and request records
- constraints: conflict rules (double booking, rest day after duty)
- engine: assignment create/update/delete/publish and round-robin generation
- review: leave / swap / preference requests and their review workflow
- repository: in-memory repositories, staff directory, scoped locks
- api_client: REST-backed assignment repository
- config: CSV directory loaders
"""

from .models import (
    Department,
    DutyPosition,
    Request,
    RequestDraft,
    RequestReviewInput,
    RequestStatus,
    RequestType,
    ReviewDecision,
    ScheduleGenRequest,
    ShiftAssignment,
    ShiftDraft,
    ShiftStatus,
    StaffMember,
    StaffRole,
)

from .errors import (
    ConflictError,
    ErrorKind,
    InvalidTransitionError,
    NoEligibleStaffError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)

from .constraints import ConflictChecker, ConstraintViolation
from .repository import (
    AssignmentRepository,
    InMemoryAssignmentRepository,
    InMemoryRequestRepository,
    KeyedLockRegistry,
    RequestRepository,
    StaffDirectory,
)
from .engine import ShiftAssignmentEngine, calculate_workload_metrics
from .review import RequestService

__all__ = [
    "Department",
    "DutyPosition",
    "Request",
    "RequestDraft",
    "RequestReviewInput",
    "RequestStatus",
    "RequestType",
    "ReviewDecision",
    "ScheduleGenRequest",
    "ShiftAssignment",
    "ShiftDraft",
    "ShiftStatus",
    "StaffMember",
    "StaffRole",
    "ConflictError",
    "ErrorKind",
    "InvalidTransitionError",
    "NoEligibleStaffError",
    "NotFoundError",
    "SchedulingError",
    "ValidationError",
    "ConflictChecker",
    "ConstraintViolation",
    "AssignmentRepository",
    "InMemoryAssignmentRepository",
    "InMemoryRequestRepository",
    "KeyedLockRegistry",
    "RequestRepository",
    "StaffDirectory",
    "ShiftAssignmentEngine",
    "calculate_workload_metrics",
    "RequestService",
]
