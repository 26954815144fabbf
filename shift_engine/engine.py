"""
engine.py — Shift Assignment Engine

Single-assignment operations (create / update / delete / publish) validate a
candidate against the staff member's committed assignments and write only
when the candidate is legal: a rejected call leaves the repository untouched.

Bulk generation (generate_schedule):
  pool   = active staff of the department, directory order
  offset = 0 .. num_days-1, day = start_date + offset
  skip the day if the department already has a non-cancelled assignment on it
  assignee = pool[offset % len(pool)]          (round-robin, reproducible)
  conflict → skip the day and continue          (best effort)

Manual creation aborts on the first conflict; generation skips and reports
what it did create.

Locking: "staff:<id>" around every read-validate-write, "department:<id>"
around a whole generation run.
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from uuid import uuid4

from shift_engine.constraints import ConflictChecker, ConstraintViolation
from shift_engine.date_utils import at_hour, date_only, date_range, utc_now
from shift_engine.errors import (
    ConflictError,
    InvalidTransitionError,
    NoEligibleStaffError,
    NotFoundError,
    ValidationError,
)
from shift_engine.models import (
    PATCHABLE_FIELDS,
    DutyPosition,
    ScheduleGenRequest,
    ShiftAssignment,
    ShiftDraft,
    ShiftStatus,
    StaffMember,
    coerce_enum,
)
from shift_engine.repository import (
    AssignmentRepository,
    KeyedLockRegistry,
    StaffDirectory,
    department_scope,
    staff_scope,
)
from shift_engine.schedule_config import (
    DEFAULT_SHIFT_HOURS,
    DEFAULT_SHIFT_START_HOUR,
    STATUS_TRANSITIONS,
)

logger = logging.getLogger(__name__)

ShiftPatch = Dict[str, Any]


def _new_id() -> str:
    return uuid4().hex


class ShiftAssignmentEngine:

    def __init__(
        self,
        assignments: AssignmentRepository,
        directory: Optional[StaffDirectory] = None,
        checker: Optional[ConflictChecker] = None,
        locks: Optional[KeyedLockRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.assignments = assignments
        self.directory = directory
        self.checker = checker or ConflictChecker()
        self.locks = locks or KeyedLockRegistry()
        self.clock = clock
        self.id_factory = id_factory

    # -----------------------------------------------------------------------
    # Validation helpers
    # -----------------------------------------------------------------------

    def _day(self, value: Union[date, datetime]) -> date:
        """Calendar day in the checker's zone, so bucketing matches the conflict rules."""
        return date_only(value, self.checker.tz)

    def _require(self, assignment_id: str) -> ShiftAssignment:
        current = self.assignments.get(assignment_id)
        if current is None:
            raise NotFoundError(f"Assignment {assignment_id} not found", assignment_id=assignment_id)
        return current

    def _validate_times(self, candidate: ShiftAssignment) -> None:
        if not isinstance(candidate.start, datetime) or not isinstance(candidate.end, datetime):
            raise ValidationError("start and end must be datetimes", staff=candidate.user_id)
        if candidate.start >= candidate.end:
            raise ValidationError(
                f"start {candidate.start.isoformat()} must be before end {candidate.end.isoformat()}",
                staff=candidate.user_id,
            )

    def _validate_refs(self, candidate: ShiftAssignment) -> None:
        """Check staff / position references when a directory is configured."""
        if self.directory is None:
            return
        staff = self.directory.get_staff(candidate.user_id)
        if staff is None:
            raise ValidationError(f"Unknown staff member {candidate.user_id}", staff=candidate.user_id)
        if not staff.active:
            raise ValidationError(f"Staff member {candidate.user_id} is inactive", staff=candidate.user_id)
        position = self.directory.get_position(candidate.room_id)
        if position is None:
            raise ValidationError(f"Unknown duty position {candidate.room_id}", room=candidate.room_id)
        if not position.active:
            raise ValidationError(f"Duty position {candidate.room_id} is inactive", room=candidate.room_id)

    def _check_transition(self, current: ShiftStatus, new: ShiftStatus, assignment_id: str) -> None:
        if new is current:
            return
        if new not in STATUS_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Assignment {assignment_id} cannot move from {current.value} to {new.value}",
                assignment_id=assignment_id,
            )

    def _ensure_no_conflict(self, candidate: ShiftAssignment) -> None:
        existing = self.assignments.list(user_id=candidate.user_id)
        violation = self.checker.check(candidate, existing)
        if violation is not None:
            logger.warning(f"Rejected assignment for {candidate.user_id}: {violation}")
            raise ConflictError(violation)

    def _candidate_from_draft(self, draft: ShiftDraft) -> ShiftAssignment:
        is_emergency = draft.is_emergency
        if is_emergency is None:
            position = self.directory.get_position(draft.room_id) if self.directory else None
            is_emergency = bool(position and position.is_emergency)
        status = coerce_enum(ShiftStatus, draft.status) if draft.status is not None else ShiftStatus.DRAFT
        return ShiftAssignment(
            id=None,
            room_id=draft.room_id,
            user_id=draft.user_id,
            start=draft.start,
            end=draft.end,
            is_emergency=is_emergency,
            status=status,
            notes=draft.notes,
        )

    def _commit_new(self, candidate: ShiftAssignment, actor_id: str) -> ShiftAssignment:
        now = self.clock()
        record = candidate.copy(
            id=self.id_factory(),
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        stored = self.assignments.add(record)
        logger.info(
            f"Assignment {stored.id} created: {stored.user_id} @ {stored.room_id} "
            f"on {self._day(stored.start).isoformat()} by {actor_id}"
        )
        return stored

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_assignment(self, assignment_id: str) -> ShiftAssignment:
        return self._require(assignment_id)

    def list_assignments(
        self,
        user_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        include_cancelled: bool = True,
    ) -> List[ShiftAssignment]:
        """Assignments filtered by staff member and inclusive day range, sorted by start."""
        out = []
        for a in self.assignments.list(user_id=user_id):
            day = self._day(a.start)
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
            if not include_cancelled and not a.is_active:
                continue
            out.append(a)
        return sorted(out, key=lambda a: (self._day(a.start), a.user_id, a.id or ""))

    def check_assignment(self, draft: ShiftDraft) -> Optional[ConstraintViolation]:
        """Validate a draft without writing. Returns the violation, or None if legal."""
        candidate = self._candidate_from_draft(draft)
        self._validate_times(candidate)
        self._validate_refs(candidate)
        return self.checker.check(candidate, self.assignments.list(user_id=candidate.user_id))

    def check_reassignment(self, assignment_id: str, new_user_id: str) -> Optional[ConstraintViolation]:
        """Would moving this assignment to new_user_id break a rule for them?"""
        current = self._require(assignment_id)
        candidate = current.copy(user_id=new_user_id)
        self._validate_refs(candidate)
        return self.checker.check(candidate, self.assignments.list(user_id=new_user_id))

    def audit(self) -> List[ConstraintViolation]:
        return self.checker.check_all(self.assignments.list())

    # -----------------------------------------------------------------------
    # Single-assignment operations
    # -----------------------------------------------------------------------

    def create_assignment(self, draft: ShiftDraft, actor_id: str) -> ShiftAssignment:
        candidate = self._candidate_from_draft(draft)
        self._validate_times(candidate)
        self._validate_refs(candidate)
        with self.locks.hold(staff_scope(candidate.user_id)):
            if candidate.is_active:
                self._ensure_no_conflict(candidate)
            return self._commit_new(candidate, actor_id)

    def update_assignment(self, assignment_id: str, patch: ShiftPatch, actor_id: str) -> ShiftAssignment:
        """
        Merge patch into the stored record.

        Changing user_id or start re-runs the conflict check (excluding the
        record itself); status changes must follow the lifecycle. Other
        fields are applied unconditionally.
        """
        unknown = set(patch) - set(PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot patch fields: {sorted(unknown)}", assignment_id=assignment_id)

        while True:
            owner = self._require(assignment_id).user_id
            scopes = {staff_scope(owner)}
            if patch.get("user_id"):
                scopes.add(staff_scope(patch["user_id"]))

            with self.locks.hold(*scopes):
                current = self._require(assignment_id)
                if current.user_id != owner:
                    # reassigned while waiting for the lock; retake with the new owner
                    continue

                changes = dict(patch)
                if "status" in changes:
                    changes["status"] = coerce_enum(ShiftStatus, changes["status"])
                    self._check_transition(current.status, changes["status"], assignment_id)

                merged = current.copy(**changes)
                if merged.start != current.start or merged.end != current.end:
                    self._validate_times(merged)
                if merged.user_id != current.user_id or merged.room_id != current.room_id:
                    self._validate_refs(merged)

                moved = merged.user_id != current.user_id or merged.start != current.start
                if moved and merged.is_active:
                    self._ensure_no_conflict(merged)

                merged.updated_at = self.clock()
                stored = self.assignments.update(merged)
                break

        logger.info(f"Assignment {assignment_id} updated by {actor_id}: {sorted(patch)}")
        return stored

    def delete_assignment(self, assignment_id: str, actor_id: str) -> None:
        if not self.assignments.delete(assignment_id):
            raise NotFoundError(f"Assignment {assignment_id} not found", assignment_id=assignment_id)
        logger.info(f"Assignment {assignment_id} deleted by {actor_id}")

    def publish(self, assignment_id: str, actor_id: str) -> ShiftAssignment:
        current = self._require(assignment_id)
        if current.status in (ShiftStatus.COMPLETED, ShiftStatus.CANCELLED):
            raise InvalidTransitionError(
                f"Assignment {assignment_id} is {current.status.value} and cannot be published",
                assignment_id=assignment_id,
            )
        return self.update_assignment(assignment_id, {"status": ShiftStatus.PUBLISHED}, actor_id)

    def complete(self, assignment_id: str, actor_id: str) -> ShiftAssignment:
        return self.update_assignment(assignment_id, {"status": ShiftStatus.COMPLETED}, actor_id)

    def cancel(self, assignment_id: str, actor_id: str) -> ShiftAssignment:
        return self.update_assignment(assignment_id, {"status": ShiftStatus.CANCELLED}, actor_id)

    # -----------------------------------------------------------------------
    # Bulk generation
    # -----------------------------------------------------------------------

    def _generation_position(self, department_id: str) -> Optional[DutyPosition]:
        """First active non-emergency position, else first active position."""
        positions = self.directory.positions_for(department_id)
        for p in positions:
            if not p.is_emergency:
                return p
        return positions[0] if positions else None

    def generate_schedule(
        self,
        department_id: str,
        start_date: Union[date, datetime],
        num_days: int,
        actor_id: str,
    ) -> List[ShiftAssignment]:
        """
        Round-robin draft schedule for one department, one shift per day.

        Returns the assignments created by this call. NoEligibleStaffError
        leaves nothing from this call committed.
        """
        if self.directory is None:
            raise ValidationError("Schedule generation needs a staff directory")
        if num_days < 0:
            raise ValidationError(f"num_days must be >= 0, got {num_days}", department=department_id)

        first_day = self._day(start_date)
        department = self.directory.get_department(department_id)
        shift_hours = department.default_shift_hours if department else DEFAULT_SHIFT_HOURS

        pool: List[StaffMember] = self.directory.eligible_pool(department_id)
        if not pool:
            raise NoEligibleStaffError(
                f"No active staff in department {department_id}",
                department=department_id,
            )

        position = self._generation_position(department_id)
        if position is None:
            raise ValidationError(
                f"Department {department_id} has no active duty position",
                department=department_id,
            )
        department_rooms = {p.id for p in self.directory.positions_for(department_id, active_only=False)}

        logger.info(
            f"Generating {num_days} day(s) for department {department_id} from {first_day} "
            f"(pool={len(pool)}, position={position.id})"
        )

        created: List[ShiftAssignment] = []
        skipped_filled = 0
        skipped_conflict = 0

        with self.locks.hold(department_scope(department_id)):
            try:
                for offset, day in enumerate(date_range(first_day, num_days)):
                    already_filled = any(
                        a.is_active and a.room_id in department_rooms and self._day(a.start) == day
                        for a in self.assignments.list()
                    )
                    if already_filled:
                        logger.debug(f"{day}: department {department_id} already covered — skipping")
                        skipped_filled += 1
                        continue

                    assignee = pool[offset % len(pool)]
                    start = at_hour(day, DEFAULT_SHIFT_START_HOUR, self.checker.tz)
                    candidate = ShiftAssignment(
                        id=None,
                        room_id=position.id,
                        user_id=assignee.id,
                        start=start,
                        end=start + timedelta(hours=shift_hours),
                        is_emergency=position.is_emergency,
                        status=ShiftStatus.DRAFT,
                    )

                    with self.locks.hold(staff_scope(assignee.id)):
                        violation = self.checker.check(candidate, self.assignments.list(user_id=assignee.id))
                        if violation is not None:
                            logger.warning(f"{day}: skipped {assignee.id} — {violation.constraint_type}")
                            skipped_conflict += 1
                            continue
                        created.append(self._commit_new(candidate, actor_id))
            except Exception:
                for a in created:
                    self.assignments.delete(a.id)
                logger.error(f"Generation for {department_id} failed; rolled back {len(created)} assignment(s)")
                raise

        logger.info(
            f"Department {department_id}: {len(created)} created, "
            f"{skipped_filled} already covered, {skipped_conflict} skipped on conflict"
        )
        return created

    def generate(self, gen_request: ScheduleGenRequest, actor_id: str) -> List[ShiftAssignment]:
        return self.generate_schedule(
            gen_request.department_id,
            gen_request.start_date,
            gen_request.num_days,
            actor_id,
        )


# ---------------------------------------------------------------------------
# Workload metrics
# ---------------------------------------------------------------------------

def calculate_workload_metrics(
    assignments: Sequence[ShiftAssignment],
    staff: Sequence[StaffMember],
) -> Dict[str, Any]:
    """
    Per-staff assignment counts, emergency counts and hours, with spread.

    Cancelled assignments are ignored; staff not in `staff` are skipped.

    Returns:
        {
          mean, std, cv, min, max,
          counts: {staff_id: int},
          emergency_counts: {staff_id: int},
          hours_counts: {staff_id: float},
          hours_mean, hours_std, hours_cv,
        }
    """
    counts: Dict[str, int] = {s.id: 0 for s in staff}
    emergency_counts: Dict[str, int] = {s.id: 0 for s in staff}
    hours_counts: Dict[str, float] = {s.id: 0.0 for s in staff}

    for a in assignments:
        if not a.is_active or a.user_id not in counts:
            continue
        counts[a.user_id] += 1
        if a.is_emergency:
            emergency_counts[a.user_id] += 1
        hours_counts[a.user_id] += (a.end - a.start).total_seconds() / 3600

    def _spread(values: List[float]):
        mean_val = sum(values) / len(values) if values else 0.0
        variance = sum((v - mean_val) ** 2 for v in values) / len(values) if values else 0.0
        std_val = math.sqrt(variance)
        cv = (std_val / mean_val * 100) if mean_val > 0 else 0.0
        return mean_val, std_val, cv

    values = [float(v) for v in counts.values()]
    mean_val, std_val, cv = _spread(values)
    hours_mean, hours_std, hours_cv = _spread(list(hours_counts.values()))

    return {
        "mean": mean_val,
        "std": std_val,
        "cv": cv,
        "min": min(values) if values else 0,
        "max": max(values) if values else 0,
        "counts": counts,
        "emergency_counts": emergency_counts,
        "hours_counts": hours_counts,
        "hours_mean": hours_mean,
        "hours_std": hours_std,
        "hours_cv": hours_cv,
    }
