"""
Tests for the assignment engine: single-assignment operations, lifecycle
transitions, round-robin generation and workload metrics.
"""

import itertools
import sys
import threading
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from shift_engine.constraints import ConflictChecker
from shift_engine.date_utils import date_only
from shift_engine.engine import ShiftAssignmentEngine, calculate_workload_metrics
from shift_engine.errors import (
    ConflictError,
    ErrorKind,
    InvalidTransitionError,
    NoEligibleStaffError,
    NotFoundError,
    ValidationError,
)
from shift_engine.models import (
    Department,
    DutyPosition,
    ScheduleGenRequest,
    ShiftAssignment,
    ShiftDraft,
    ShiftStatus,
    StaffMember,
)
from shift_engine.repository import InMemoryAssignmentRepository, KeyedLockRegistry, StaffDirectory

NOW = datetime(2025, 7, 1, 12, 0)
ADMIN = "admin-1"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def directory():
    return StaffDirectory(
        staff=[
            StaffMember("A", "Alice", "CARD"),
            StaffMember("B", "Bruno", "CARD"),
            StaffMember("C", "Chen", "CARD"),
            StaffMember("D", "Dara", "CARD", active=False),
            StaffMember("E", "Emil", "EMER"),
            StaffMember("P", "Priya", "PEDS"),
        ],
        departments=[
            Department("CARD", "Cardiology"),
            Department("EMER", "Emergency"),
            Department("PEDS", "Pediatrics", default_shift_hours=12),
            Department("EMPTY", "No staff"),
        ],
        positions=[
            DutyPosition("R1", "EMER", "Resus", is_emergency=True),
            DutyPosition("R3", "CARD", "Ward"),
            DutyPosition("R4", "PEDS", "Ward"),
            DutyPosition("R5", "CARD", "Old ward", active=False),
            DutyPosition("R9", "EMPTY", "Unused"),
        ],
    )


@pytest.fixture
def repo():
    return InMemoryAssignmentRepository()


@pytest.fixture
def engine(repo, directory):
    counter = itertools.count(1)
    return ShiftAssignmentEngine(
        repo,
        directory=directory,
        clock=lambda: NOW,
        id_factory=lambda: f"a{next(counter)}",
    )


def _draft(user_id, day, room_id="R3", hours=24, **kwargs):
    start = datetime(day.year, day.month, day.day, 8)
    return ShiftDraft(room_id=room_id, user_id=user_id, start=start,
                      end=start + timedelta(hours=hours), **kwargs)


def _snapshot(repo):
    return sorted((a.to_dict() for a in repo.list()), key=lambda d: d["id"])


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreateAssignment:

    def test_create_stamps_metadata(self, engine, repo):
        created = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)

        assert created.id == "a1"
        assert created.status is ShiftStatus.DRAFT
        assert created.created_by == ADMIN
        assert created.created_at == NOW
        assert created.updated_at == NOW
        assert repo.get("a1") == created

    def test_requested_status_is_kept(self, engine):
        created = engine.create_assignment(
            _draft("A", date(2025, 7, 10), status=ShiftStatus.PUBLISHED), ADMIN
        )
        assert created.status is ShiftStatus.PUBLISHED

    def test_emergency_flag_inherited_from_position(self, engine):
        created = engine.create_assignment(_draft("E", date(2025, 7, 10), room_id="R1"), ADMIN)
        assert created.is_emergency is True

    def test_explicit_emergency_flag_wins(self, engine):
        created = engine.create_assignment(
            _draft("E", date(2025, 7, 10), room_id="R1", is_emergency=False), ADMIN
        )
        assert created.is_emergency is False

    def test_double_booking_and_rest_day(self, engine):
        """07-10 accepted, 07-10 again and 07-11 rejected, 07-12 accepted."""
        first = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)

        with pytest.raises(ConflictError) as exc:
            engine.create_assignment(_draft("A", date(2025, 7, 10), room_id="R1"), ADMIN)
        assert exc.value.kind is ErrorKind.DOUBLE_BOOKING
        assert exc.value.context["conflicting_id"] == first.id

        with pytest.raises(ConflictError) as exc:
            engine.create_assignment(_draft("A", date(2025, 7, 11)), ADMIN)
        assert exc.value.kind is ErrorKind.MISSING_REST_DAY
        assert exc.value.context["conflicting_id"] == first.id
        assert exc.value.context["date"] == "2025-07-11"

        engine.create_assignment(_draft("A", date(2025, 7, 12)), ADMIN)

    def test_rejected_create_leaves_repository_unchanged(self, engine, repo):
        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        before = _snapshot(repo)

        with pytest.raises(ConflictError):
            engine.create_assignment(_draft("A", date(2025, 7, 11)), ADMIN)

        assert _snapshot(repo) == before

    def test_cancelled_assignment_frees_the_day(self, engine):
        first = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.cancel(first.id, ADMIN)

        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.create_assignment(_draft("B", date(2025, 7, 11)), ADMIN)

    def test_other_staff_unaffected(self, engine):
        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.create_assignment(_draft("B", date(2025, 7, 10)), ADMIN)
        engine.create_assignment(_draft("C", date(2025, 7, 11)), ADMIN)

    def test_start_must_precede_end(self, engine, repo):
        draft = _draft("A", date(2025, 7, 10))
        draft.end = draft.start
        with pytest.raises(ValidationError) as exc:
            engine.create_assignment(draft, ADMIN)
        assert exc.value.kind is ErrorKind.VALIDATION_FAILED
        assert len(repo) == 0

    @pytest.mark.parametrize("user_id, room_id", [
        ("ZZ", "R3"),   # unknown staff
        ("D", "R3"),    # inactive staff
        ("A", "R99"),   # unknown position
        ("A", "R5"),    # inactive position
    ])
    def test_invalid_references_rejected(self, engine, repo, user_id, room_id):
        with pytest.raises(ValidationError):
            engine.create_assignment(_draft(user_id, date(2025, 7, 10), room_id=room_id), ADMIN)
        assert len(repo) == 0

    def test_no_directory_skips_reference_checks(self, repo):
        engine = ShiftAssignmentEngine(repo)
        created = engine.create_assignment(_draft("ZZ", date(2025, 7, 10), room_id="R99"), ADMIN)
        assert created.is_emergency is False

    def test_cancelled_draft_skips_conflict_check(self, engine, repo):
        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)

        created = engine.create_assignment(
            _draft("A", date(2025, 7, 10), status=ShiftStatus.CANCELLED), ADMIN
        )

        assert created.status is ShiftStatus.CANCELLED
        assert len(repo) == 2
        assert engine.audit() == []

    def test_unknown_draft_status_is_validation_error(self, engine, repo):
        with pytest.raises(ValidationError) as exc:
            engine.create_assignment(_draft("A", date(2025, 7, 10), status="bogus"), ADMIN)
        assert exc.value.kind is ErrorKind.VALIDATION_FAILED
        assert len(repo) == 0

    def test_check_assignment_does_not_write(self, engine, repo):
        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)

        assert engine.check_assignment(_draft("A", date(2025, 7, 12))) is None
        violation = engine.check_assignment(_draft("A", date(2025, 7, 11)))
        assert violation.constraint_type == "MISSING_REST_DAY"
        assert len(repo) == 1

    def test_concurrent_creates_for_same_day_admit_one(self, repo, directory):
        engine = ShiftAssignmentEngine(repo, directory=directory)
        barrier = threading.Barrier(8)
        outcomes = []

        def attempt():
            barrier.wait()
            try:
                engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert len(repo) == 1


# ---------------------------------------------------------------------------
# Update / delete / lifecycle
# ---------------------------------------------------------------------------

class TestUpdateAssignment:

    def test_update_missing_raises_not_found(self, engine):
        with pytest.raises(NotFoundError) as exc:
            engine.update_assignment("nope", {"notes": "x"}, ADMIN)
        assert exc.value.kind is ErrorKind.NOT_FOUND

    def test_unknown_field_rejected(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        with pytest.raises(ValidationError):
            engine.update_assignment(a.id, {"created_by": "mallory"}, ADMIN)

    def test_notes_only_update_skips_conflict_check(self, repo, directory):
        """Pre-existing bad data must not block edits that don't move the shift."""
        day = datetime(2025, 7, 10, 8)
        repo.add(ShiftAssignment("x1", "R3", "A", day, day + timedelta(hours=24)))
        repo.add(ShiftAssignment("x2", "R1", "A", day, day + timedelta(hours=24)))
        engine = ShiftAssignmentEngine(repo, directory=directory, clock=lambda: NOW)

        updated = engine.update_assignment("x1", {"notes": "handover at 09:00"}, ADMIN)
        assert updated.notes == "handover at 09:00"
        assert updated.updated_at == NOW

    def test_moving_within_own_day_is_allowed(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        later = a.start + timedelta(hours=4)
        updated = engine.update_assignment(a.id, {"start": later, "end": later + timedelta(hours=12)}, ADMIN)
        assert updated.start == later

    def test_move_onto_conflicting_day_rejected(self, engine, repo):
        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        b = engine.create_assignment(_draft("A", date(2025, 7, 14)), ADMIN)
        before = _snapshot(repo)

        new_start = datetime(2025, 7, 11, 8)
        with pytest.raises(ConflictError) as exc:
            engine.update_assignment(b.id, {"start": new_start, "end": new_start + timedelta(hours=24)}, ADMIN)
        assert exc.value.kind is ErrorKind.MISSING_REST_DAY
        assert _snapshot(repo) == before

    def test_reassign_to_busy_staff_rejected(self, engine):
        engine.create_assignment(_draft("B", date(2025, 7, 10)), ADMIN)
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        with pytest.raises(ConflictError) as exc:
            engine.update_assignment(a.id, {"user_id": "B"}, ADMIN)
        assert exc.value.kind is ErrorKind.DOUBLE_BOOKING

    def test_reassign_to_free_staff(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        updated = engine.update_assignment(a.id, {"user_id": "C"}, ADMIN)
        assert updated.user_id == "C"
        assert engine.list_assignments(user_id="A") == []

    def test_invalid_time_range_rejected(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        with pytest.raises(ValidationError):
            engine.update_assignment(a.id, {"end": a.start - timedelta(hours=1)}, ADMIN)

    def test_reassigned_while_waiting_relocks_new_owner(self, directory):
        """A record moved to C between the first read and the lock is re-validated under C's lock."""

        class RecordingLocks(KeyedLockRegistry):
            def __init__(self):
                super().__init__()
                self.held = []

            def hold(self, *keys):
                self.held.append(set(keys))
                return super().hold(*keys)

        class ReassignOnFirstRead(InMemoryAssignmentRepository):
            armed = False

            def get(self, assignment_id):
                record = super().get(assignment_id)
                if self.armed:
                    self.armed = False
                    self.update(record.copy(user_id="C"))
                return record

        repo = ReassignOnFirstRead()
        locks = RecordingLocks()
        engine = ShiftAssignmentEngine(repo, directory=directory, locks=locks)
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        locks.held.clear()

        repo.armed = True
        updated = engine.update_assignment(a.id, {"notes": "handover"}, ADMIN)

        assert locks.held == [{"staff:A"}, {"staff:C"}]
        assert updated.user_id == "C"
        assert updated.notes == "handover"


class TestLifecycle:

    def test_publish_draft(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        published = engine.publish(a.id, ADMIN)
        assert published.status is ShiftStatus.PUBLISHED

    def test_publish_is_idempotent(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.publish(a.id, ADMIN)
        assert engine.publish(a.id, ADMIN).status is ShiftStatus.PUBLISHED

    @pytest.mark.parametrize("terminal", [ShiftStatus.COMPLETED, ShiftStatus.CANCELLED])
    def test_publish_terminal_rejected(self, engine, terminal):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.publish(a.id, ADMIN)
        engine.update_assignment(a.id, {"status": terminal}, ADMIN)

        with pytest.raises(InvalidTransitionError) as exc:
            engine.publish(a.id, ADMIN)
        assert exc.value.kind is ErrorKind.INVALID_TRANSITION
        assert engine.get_assignment(a.id).status is terminal

    def test_draft_cannot_complete(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        with pytest.raises(InvalidTransitionError):
            engine.complete(a.id, ADMIN)

    def test_published_completes(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.publish(a.id, ADMIN)
        assert engine.complete(a.id, ADMIN).status is ShiftStatus.COMPLETED

    def test_published_cannot_return_to_draft(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.publish(a.id, ADMIN)
        with pytest.raises(InvalidTransitionError):
            engine.update_assignment(a.id, {"status": "draft"}, ADMIN)

    def test_unknown_status_is_validation_error(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)

        with pytest.raises(ValidationError) as exc:
            engine.update_assignment(a.id, {"status": "bogus"}, ADMIN)

        assert exc.value.kind is ErrorKind.VALIDATION_FAILED
        assert "ShiftStatus" in exc.value.message
        assert engine.get_assignment(a.id).status is ShiftStatus.DRAFT

    def test_status_accepts_string_values(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        assert engine.update_assignment(a.id, {"status": "Published"}, ADMIN).status is ShiftStatus.PUBLISHED

    def test_delete(self, engine, repo):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.delete_assignment(a.id, ADMIN)
        assert len(repo) == 0
        with pytest.raises(NotFoundError):
            engine.delete_assignment(a.id, ADMIN)

    def test_get_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_assignment("nope")


class TestQueries:

    def test_list_filters_by_range_and_status(self, engine):
        a = engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)
        engine.create_assignment(_draft("A", date(2025, 7, 12)), ADMIN)
        engine.create_assignment(_draft("B", date(2025, 7, 11)), ADMIN)
        engine.cancel(a.id, ADMIN)

        all_days = engine.list_assignments()
        assert [date_only(x.start) for x in all_days] == [
            date(2025, 7, 10), date(2025, 7, 11), date(2025, 7, 12),
        ]

        live = engine.list_assignments(include_cancelled=False)
        assert a.id not in {x.id for x in live}

        window = engine.list_assignments(start=date(2025, 7, 11), end=date(2025, 7, 11))
        assert [x.user_id for x in window] == ["B"]


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class TestGenerateSchedule:

    def test_round_robin_order(self, engine):
        created = engine.generate_schedule("CARD", date(2025, 7, 1), 5, ADMIN)

        assert [a.user_id for a in created] == ["A", "B", "C", "A", "B"]
        assert [date_only(a.start) for a in created] == [date(2025, 7, d) for d in range(1, 6)]
        assert all(a.status is ShiftStatus.DRAFT for a in created)
        assert all(a.created_by == ADMIN for a in created)
        assert all(a.room_id == "R3" for a in created)
        assert all(a.end - a.start == timedelta(hours=24) for a in created)

    def test_inactive_staff_excluded(self, engine):
        created = engine.generate_schedule("CARD", date(2025, 7, 1), 6, ADMIN)
        assert "D" not in {a.user_id for a in created}

    def test_department_shift_length(self, engine):
        created = engine.generate_schedule("PEDS", date(2025, 7, 1), 1, ADMIN)
        assert created[0].end - created[0].start == timedelta(hours=12)

    def test_emergency_only_department(self, engine):
        created = engine.generate_schedule("EMER", date(2025, 7, 1), 1, ADMIN)
        assert created[0].room_id == "R1"
        assert created[0].is_emergency is True

    def test_second_run_creates_nothing(self, engine, repo):
        engine.generate_schedule("CARD", date(2025, 7, 1), 5, ADMIN)
        before = _snapshot(repo)

        assert engine.generate_schedule("CARD", date(2025, 7, 1), 5, ADMIN) == []
        assert _snapshot(repo) == before

    def test_single_staff_pool_rests_every_other_day(self, engine):
        """P is the only PEDS member: day 2 breaks the rest rule, day 3 is fine."""
        created = engine.generate_schedule("PEDS", date(2025, 7, 1), 5, ADMIN)
        assert [date_only(a.start).day for a in created] == [1, 3, 5]

    def test_conflicting_day_skipped(self, engine):
        engine.create_assignment(_draft("B", date(2025, 7, 1), room_id="R1"), ADMIN)

        created = engine.generate_schedule("CARD", date(2025, 7, 1), 3, ADMIN)

        # day 1: A (B's R1 shift is not a CARD room), day 2: B resting, day 3: C
        assert [(date_only(a.start).day, a.user_id) for a in created] == [(1, "A"), (3, "C")]
        assert engine.audit() == []

    def test_covered_day_skipped(self, engine):
        engine.create_assignment(_draft("B", date(2025, 7, 2)), ADMIN)

        created = engine.generate_schedule("CARD", date(2025, 7, 1), 3, ADMIN)

        assert [date_only(a.start).day for a in created] == [1, 3]

    def test_cancelled_assignment_does_not_cover_day(self, engine):
        a = engine.create_assignment(_draft("C", date(2025, 7, 2)), ADMIN)
        engine.cancel(a.id, ADMIN)

        created = engine.generate_schedule("CARD", date(2025, 7, 2), 1, ADMIN)
        assert len(created) == 1

    def test_no_eligible_staff(self, engine, repo):
        with pytest.raises(NoEligibleStaffError) as exc:
            engine.generate_schedule("EMPTY", date(2025, 7, 1), 3, ADMIN)
        assert exc.value.kind is ErrorKind.NO_ELIGIBLE_STAFF
        assert len(repo) == 0

    def test_unknown_department_has_no_staff(self, engine):
        with pytest.raises(NoEligibleStaffError):
            engine.generate_schedule("NOPE", date(2025, 7, 1), 3, ADMIN)

    def test_zero_days(self, engine):
        assert engine.generate_schedule("CARD", date(2025, 7, 1), 0, ADMIN) == []

    def test_negative_days_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.generate_schedule("CARD", date(2025, 7, 1), -1, ADMIN)

    def test_requires_directory(self, repo):
        with pytest.raises(ValidationError):
            ShiftAssignmentEngine(repo).generate_schedule("CARD", date(2025, 7, 1), 1, ADMIN)

    def test_generate_from_request(self, engine):
        created = engine.generate(ScheduleGenRequest("CARD", date(2025, 7, 1), 2), ADMIN)
        assert [a.user_id for a in created] == ["A", "B"]

    def test_storage_failure_rolls_back(self, directory):
        class FailingRepository(InMemoryAssignmentRepository):
            def add(self, assignment):
                if len(self) == 2:
                    raise RuntimeError("storage unavailable")
                return super().add(assignment)

        repo = FailingRepository()
        engine = ShiftAssignmentEngine(repo, directory=directory)

        with pytest.raises(RuntimeError):
            engine.generate_schedule("CARD", date(2025, 7, 1), 5, ADMIN)
        assert len(repo) == 0

    def test_concurrent_runs_for_one_department_serialise(self, engine, repo):
        barrier = threading.Barrier(4)
        results = []

        def run():
            barrier.wait()
            results.append(engine.generate_schedule("CARD", date(2025, 7, 1), 7, ADMIN))

        threads = [threading.Thread(target=run) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(len(r) for r in results) == [0, 0, 0, 7]
        assert len(repo) == 7
        assert engine.audit() == []

    def test_days_follow_checker_time_zone(self, repo, directory):
        tokyo = ZoneInfo("Asia/Tokyo")
        engine = ShiftAssignmentEngine(repo, directory=directory, checker=ConflictChecker(tz=tokyo))
        # 20:00 UTC on 07-10 is 05:00 on 07-11 in Tokyo
        late = datetime(2025, 7, 10, 20, tzinfo=timezone.utc)
        engine.create_assignment(
            ShiftDraft(room_id="R3", user_id="B", start=late, end=late + timedelta(hours=24)), ADMIN
        )

        assert engine.generate_schedule("CARD", date(2025, 7, 11), 1, ADMIN) == []
        assert [a.user_id for a in engine.list_assignments(start=date(2025, 7, 11), end=date(2025, 7, 11))] == ["B"]
        assert engine.list_assignments(start=date(2025, 7, 10), end=date(2025, 7, 10)) == []

        (created,) = engine.generate_schedule("CARD", date(2025, 7, 13), 1, ADMIN)
        assert created.start == datetime(2025, 7, 13, 8, tzinfo=tokyo)
        assert date_only(created.start, tokyo) == date(2025, 7, 13)

    def test_generated_plus_manual_set_stays_legal(self, engine):
        engine.generate_schedule("CARD", date(2025, 7, 1), 14, ADMIN)
        engine.generate_schedule("EMER", date(2025, 7, 1), 14, ADMIN)
        for day in (14, 15, 20):
            try:
                engine.create_assignment(_draft("A", date(2025, 7, day), room_id="R1"), ADMIN)
            except ConflictError:
                pass
        assert engine.audit() == []

    def test_placing_before_existing_duty_is_not_checked_forward(self, engine):
        engine.create_assignment(_draft("A", date(2025, 7, 11)), ADMIN)
        engine.create_assignment(_draft("A", date(2025, 7, 10)), ADMIN)

        violations = engine.audit()
        assert [v.constraint_type for v in violations] == ["MISSING_REST_DAY"]


# ---------------------------------------------------------------------------
# Workload metrics
# ---------------------------------------------------------------------------

class TestWorkloadMetrics:

    def test_counts_and_hours(self, engine, directory):
        created = engine.generate_schedule("CARD", date(2025, 7, 1), 5, ADMIN)
        engine.cancel(created[-1].id, ADMIN)

        metrics = calculate_workload_metrics(
            engine.list_assignments(), directory.eligible_pool("CARD")
        )

        assert metrics["counts"] == {"A": 2, "B": 1, "C": 1}
        assert metrics["hours_counts"]["A"] == pytest.approx(48.0)
        assert metrics["min"] == 1
        assert metrics["max"] == 2
        assert metrics["cv"] > 0

    def test_even_spread_has_zero_cv(self, engine, directory):
        engine.generate_schedule("CARD", date(2025, 7, 1), 6, ADMIN)
        metrics = calculate_workload_metrics(
            engine.list_assignments(), directory.eligible_pool("CARD")
        )
        assert metrics["counts"] == {"A": 2, "B": 2, "C": 2}
        assert metrics["cv"] == pytest.approx(0.0)

    def test_empty(self):
        metrics = calculate_workload_metrics([], [])
        assert metrics["mean"] == 0.0
        assert metrics["cv"] == 0.0
