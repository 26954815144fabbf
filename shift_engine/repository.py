"""
repository.py — Storage collaborators injected into the engine

  - AssignmentRepository / RequestRepository: abstract read/write access to
    the canonical record sets (in-memory here, HTTP in api_client.py)
  - StaffDirectory: read-only staff / department / duty-position lookup
  - KeyedLockRegistry: one mutex per scope key ("staff:<id>",
    "department:<id>", ...) so read-validate-write runs atomically per scope

In-memory repositories hand out copies; mutating a returned record never
changes stored state.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from shift_engine.models import (
    Department,
    DutyPosition,
    Request,
    RequestStatus,
    RequestType,
    ShiftAssignment,
    StaffMember,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------

class AssignmentRepository(ABC):

    @abstractmethod
    def get(self, assignment_id: str) -> Optional[ShiftAssignment]:
        raise NotImplementedError

    @abstractmethod
    def list(self, user_id: Optional[str] = None) -> List[ShiftAssignment]:
        raise NotImplementedError

    @abstractmethod
    def add(self, assignment: ShiftAssignment) -> ShiftAssignment:
        raise NotImplementedError

    @abstractmethod
    def update(self, assignment: ShiftAssignment) -> ShiftAssignment:
        raise NotImplementedError

    @abstractmethod
    def delete(self, assignment_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""
        raise NotImplementedError


class InMemoryAssignmentRepository(AssignmentRepository):

    def __init__(self, assignments: Optional[Iterable[ShiftAssignment]] = None):
        self._records: Dict[str, ShiftAssignment] = {}
        for a in assignments or []:
            self._records[a.id] = a.copy()

    def get(self, assignment_id: str) -> Optional[ShiftAssignment]:
        record = self._records.get(assignment_id)
        return record.copy() if record else None

    def list(self, user_id: Optional[str] = None) -> List[ShiftAssignment]:
        return [
            a.copy() for a in self._records.values()
            if user_id is None or a.user_id == user_id
        ]

    def add(self, assignment: ShiftAssignment) -> ShiftAssignment:
        if assignment.id in self._records:
            raise KeyError(f"Assignment {assignment.id} already exists")
        self._records[assignment.id] = assignment.copy()
        return assignment.copy()

    def update(self, assignment: ShiftAssignment) -> ShiftAssignment:
        if assignment.id not in self._records:
            raise KeyError(f"Assignment {assignment.id} does not exist")
        self._records[assignment.id] = assignment.copy()
        return assignment.copy()

    def delete(self, assignment_id: str) -> bool:
        return self._records.pop(assignment_id, None) is not None

    def __len__(self) -> int:
        return len(self._records)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RequestRepository(ABC):

    @abstractmethod
    def get(self, request_id: str) -> Optional[Request]:
        raise NotImplementedError

    @abstractmethod
    def list(
        self,
        user_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
    ) -> List[Request]:
        raise NotImplementedError

    @abstractmethod
    def save(self, request: Request) -> Request:
        """Insert or replace by id."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, request_id: str) -> bool:
        raise NotImplementedError


class InMemoryRequestRepository(RequestRepository):

    def __init__(self, requests: Optional[Iterable[Request]] = None):
        self._records: Dict[str, Request] = {r.id: r.copy() for r in requests or []}

    def get(self, request_id: str) -> Optional[Request]:
        record = self._records.get(request_id)
        return record.copy() if record else None

    def list(
        self,
        user_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
    ) -> List[Request]:
        return [
            r.copy() for r in self._records.values()
            if (user_id is None or r.user_id == user_id)
            and (status is None or r.status is status)
            and (request_type is None or r.type is request_type)
        ]

    def save(self, request: Request) -> Request:
        self._records[request.id] = request.copy()
        return request.copy()

    def delete(self, request_id: str) -> bool:
        return self._records.pop(request_id, None) is not None


# ---------------------------------------------------------------------------
# Directory (read-only)
# ---------------------------------------------------------------------------

class StaffDirectory:
    """
    Read-only view over staff, departments and duty positions.

    Staff order is preserved: it defines the round-robin rotation order.
    """

    def __init__(
        self,
        staff: Sequence[StaffMember] = (),
        departments: Sequence[Department] = (),
        positions: Sequence[DutyPosition] = (),
    ):
        self.staff: List[StaffMember] = list(staff)
        self.departments: List[Department] = list(departments)
        self.positions: List[DutyPosition] = list(positions)
        self._staff_by_id = {s.id: s for s in self.staff}
        self._dept_by_id = {d.id: d for d in self.departments}
        self._pos_by_id = {p.id: p for p in self.positions}

    def get_staff(self, staff_id: str) -> Optional[StaffMember]:
        return self._staff_by_id.get(staff_id)

    def get_department(self, department_id: str) -> Optional[Department]:
        return self._dept_by_id.get(department_id)

    def get_position(self, position_id: str) -> Optional[DutyPosition]:
        return self._pos_by_id.get(position_id)

    def eligible_pool(self, department_id: str) -> List[StaffMember]:
        """Active staff whose primary department matches, in directory order."""
        return [s for s in self.staff if s.active and s.department_id == department_id]

    def positions_for(self, department_id: str, active_only: bool = True) -> List[DutyPosition]:
        return [
            p for p in self.positions
            if p.department_id == department_id and (p.active or not active_only)
        ]


# ---------------------------------------------------------------------------
# Scoped locking
# ---------------------------------------------------------------------------

class KeyedLockRegistry:
    """Hands out one lock per scope key; locks are created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire every key in sorted order (deadlock-free), release on exit."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._lock_for(key))
            yield


def staff_scope(staff_id: str) -> str:
    return f"staff:{staff_id}"


def department_scope(department_id: str) -> str:
    return f"department:{department_id}"


def request_scope(request_id: str) -> str:
    return f"request:{request_id}"
