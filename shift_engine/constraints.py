"""
constraints.py — Conflict rules for shift assignments

Hard rules (a candidate must NOT violate):
  - DOUBLE_BOOKING:   staff member already holds a non-cancelled assignment
                      starting on the same calendar day
  - MISSING_REST_DAY: staff member holds a non-cancelled assignment starting
                      on the calendar day before the candidate's start day

Only assignments of the same staff member are compared; cancelled
assignments never occupy a day. The rest-day rule looks backward only:
a candidate placed the day BEFORE an existing assignment is accepted.

Usage:
  checker = ConflictChecker()
  violation = checker.check(candidate, existing)     # None means OK
  violations = checker.check_all(repository.list())  # audit a whole set
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from shift_engine.date_utils import date_only
from shift_engine.errors import ErrorKind
from shift_engine.models import Department, DutyPosition, ShiftAssignment, StaffMember
from shift_engine.schedule_config import ACTIVE_STATUSES, REST_DAYS_AFTER_DUTY

logger = logging.getLogger(__name__)

DOUBLE_BOOKING = "DOUBLE_BOOKING"
MISSING_REST_DAY = "MISSING_REST_DAY"

VIOLATION_KINDS: Dict[str, ErrorKind] = {
    DOUBLE_BOOKING:   ErrorKind.DOUBLE_BOOKING,
    MISSING_REST_DAY: ErrorKind.MISSING_REST_DAY,
}


@dataclass
class ConstraintViolation:
    constraint_type: str
    description: str
    date: Optional[str] = None
    staff: Optional[str] = None
    room: Optional[str] = None
    conflicting_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [self.constraint_type]
        if self.date:
            parts.append(f"date={self.date}")
        if self.staff:
            parts.append(f"staff={self.staff}")
        if self.room:
            parts.append(f"room={self.room}")
        if self.conflicting_id:
            parts.append(f"conflicts_with={self.conflicting_id}")
        parts.append(f"→ {self.description}")
        return " | ".join(parts)


class ConflictChecker:
    """
    Pure conflict checks over a candidate and the existing assignment set.

    The caller may pass every assignment or pre-filter to the candidate's
    staff member; results are identical.
    """

    def __init__(
        self,
        tz: Optional[tzinfo] = None,
        rest_days: int = REST_DAYS_AFTER_DUTY,
    ):
        self.tz = tz
        self.rest_days = rest_days

    def _day(self, assignment: ShiftAssignment) -> date:
        return date_only(assignment.start, self.tz)

    def _comparable(
        self,
        candidate: ShiftAssignment,
        existing: Iterable[ShiftAssignment],
    ) -> List[ShiftAssignment]:
        return [
            e for e in existing
            if e.user_id == candidate.user_id
            and e.status in ACTIVE_STATUSES
            and (candidate.id is None or e.id != candidate.id)
        ]

    # -----------------------------------------------------------------------
    # Same-day check
    # -----------------------------------------------------------------------

    def check_double_booking(
        self,
        candidate: ShiftAssignment,
        existing: Iterable[ShiftAssignment],
    ) -> Optional[ConstraintViolation]:
        day = self._day(candidate)
        for e in self._comparable(candidate, existing):
            if self._day(e) == day:
                return ConstraintViolation(
                    constraint_type=DOUBLE_BOOKING,
                    description=(
                        f"Staff {candidate.user_id} already has assignment {e.id} "
                        f"on {day.isoformat()}"
                    ),
                    date=day.isoformat(),
                    staff=candidate.user_id,
                    room=candidate.room_id,
                    conflicting_id=e.id,
                )
        return None

    # -----------------------------------------------------------------------
    # Rest-day check (backward only)
    # -----------------------------------------------------------------------

    def check_rest_day(
        self,
        candidate: ShiftAssignment,
        existing: Iterable[ShiftAssignment],
    ) -> Optional[ConstraintViolation]:
        day = self._day(candidate)
        rest_window = {day - timedelta(days=k) for k in range(1, self.rest_days + 1)}
        for e in self._comparable(candidate, existing):
            duty_day = self._day(e)
            if duty_day in rest_window:
                return ConstraintViolation(
                    constraint_type=MISSING_REST_DAY,
                    description=(
                        f"Staff {candidate.user_id} needs a rest day after "
                        f"assignment {e.id} on {duty_day.isoformat()}"
                    ),
                    date=day.isoformat(),
                    staff=candidate.user_id,
                    room=candidate.room_id,
                    conflicting_id=e.id,
                    details={"duty_day": duty_day.isoformat(), "emergency": e.is_emergency},
                )
        return None

    def check(
        self,
        candidate: ShiftAssignment,
        existing: Iterable[ShiftAssignment],
    ) -> Optional[ConstraintViolation]:
        """Return the first violated rule, or None when the candidate is legal."""
        existing = list(existing)
        violation = self.check_double_booking(candidate, existing)
        if violation is None:
            violation = self.check_rest_day(candidate, existing)
        if violation is not None:
            logger.debug(f"Conflict: {violation}")
        return violation

    # -----------------------------------------------------------------------
    # Audit a committed set
    # -----------------------------------------------------------------------

    def check_all(self, assignments: Iterable[ShiftAssignment]) -> List[ConstraintViolation]:
        """
        Report every rule break inside an assignment set.

        Each offending assignment is reported once, against the earliest
        assignment it collides with.
        """
        by_staff: Dict[str, Dict[date, List[ShiftAssignment]]] = defaultdict(lambda: defaultdict(list))
        for a in assignments:
            if a.status in ACTIVE_STATUSES:
                by_staff[a.user_id][self._day(a)].append(a)

        violations: List[ConstraintViolation] = []
        for staff_id, days in sorted(by_staff.items()):
            for day in sorted(days):
                first, *rest = days[day]
                for dup in rest:
                    violations.append(ConstraintViolation(
                        constraint_type=DOUBLE_BOOKING,
                        description=f"{dup.id} and {first.id} both start on {day.isoformat()}",
                        date=day.isoformat(),
                        staff=staff_id,
                        room=dup.room_id,
                        conflicting_id=first.id,
                    ))
                for k in range(1, self.rest_days + 1):
                    prior = days.get(day - timedelta(days=k))
                    if not prior:
                        continue
                    for a in days[day]:
                        violations.append(ConstraintViolation(
                            constraint_type=MISSING_REST_DAY,
                            description=f"{a.id} starts the day after duty {prior[0].id}",
                            date=day.isoformat(),
                            staff=staff_id,
                            room=a.room_id,
                            conflicting_id=prior[0].id,
                        ))
        return violations

    # -----------------------------------------------------------------------
    # Directory validation
    # -----------------------------------------------------------------------

    def validate_directory(
        self,
        staff: Sequence[StaffMember],
        departments: Sequence[Department],
        positions: Sequence[DutyPosition],
    ) -> Tuple[List[str], List[str]]:
        """
        Validate directory records for structural integrity.

        Returns:
            (errors, warnings) as lists of strings
        """
        errors = []
        warnings = []

        for label, records in (("staff", staff), ("department", departments), ("position", positions)):
            ids = [r.id for r in records]
            dupes = {i for i in ids if ids.count(i) > 1}
            if dupes:
                errors.append(f"Duplicate {label} ids: {sorted(dupes)}")

        dept_ids = {d.id for d in departments}
        for p in positions:
            if p.department_id not in dept_ids:
                errors.append(f"Position {p.id} references unknown department {p.department_id}")
        for s in staff:
            if s.department_id not in dept_ids:
                warnings.append(f"{s.name}: department {s.department_id} not in directory")

        for d in departments:
            if not d.active:
                continue
            if not any(s.active and s.department_id == d.id for s in staff):
                warnings.append(f"Department {d.id} ({d.name}) has no active staff")
            if not any(p.active and p.department_id == d.id for p in positions):
                warnings.append(f"Department {d.id} ({d.name}) has no active duty position")

        return errors, warnings
