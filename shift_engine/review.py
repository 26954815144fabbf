"""
review.py — Leave / swap / preference requests and their review workflow

State machine per request:
  PENDING --approve-->  APPROVED
  PENDING --reject-->   REJECTED
  PENDING --withdraw--> CANCELLED
Terminal states are final; a request is never reopened.

Approving a SWAP re-validates both sides through the engine before the
status changes:
  1. the offered shift still exists, is owned by the requester and is not
     completed / cancelled
  2. moving it to swap_with_user_id passes the conflict rules for them
     (skipped when no counter-party is named: the shift is released to
     any volunteer)
A failed check aborts the approval with the underlying error and leaves the
request PENDING. The swap itself is not executed here.

review() is the only operation that writes reviewed_by / reviewed_at /
review_notes.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from shift_engine.date_utils import utc_now
from shift_engine.engine import ShiftAssignmentEngine
from shift_engine.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from shift_engine.models import (
    Request,
    RequestDraft,
    RequestReviewInput,
    RequestStatus,
    RequestType,
    ReviewDecision,
    ShiftStatus,
    coerce_enum,
)
from shift_engine.repository import (
    KeyedLockRegistry,
    RequestRepository,
    request_scope,
    staff_scope,
)
from shift_engine.schedule_config import REQUEST_TRANSITIONS

logger = logging.getLogger(__name__)

# Fields a pending request may still change
EDITABLE_FIELDS = ("start_date", "end_date", "reason", "swap_shift_id", "swap_with_user_id")

_DECISION_STATUS = {
    ReviewDecision.APPROVE: RequestStatus.APPROVED,
    ReviewDecision.REJECT:  RequestStatus.REJECTED,
}


class RequestService:

    def __init__(
        self,
        requests: RequestRepository,
        engine: ShiftAssignmentEngine,
        locks: Optional[KeyedLockRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
    ):
        self.requests = requests
        self.engine = engine
        # same registry as the engine: swap checks share its staff locks
        self.locks = locks or engine.locks
        self.clock = clock
        self.id_factory = id_factory

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _require(self, request_id: str) -> Request:
        request = self.requests.get(request_id)
        if request is None:
            raise NotFoundError(f"Request {request_id} not found", request_id=request_id)
        return request

    def _transition(self, request: Request, new: RequestStatus) -> None:
        if new not in REQUEST_TRANSITIONS[request.status]:
            raise InvalidTransitionError(
                f"Request {request.id} is {request.status.value}; cannot move to {new.value}",
                request_id=request.id,
            )

    def _validate(self, request: Request) -> None:
        if request.start_date > request.end_date:
            raise ValidationError(
                f"start_date {request.start_date} is after end_date {request.end_date}",
                request_id=request.id,
            )
        if request.type is not RequestType.SWAP:
            return
        if not request.swap_shift_id:
            raise ValidationError("Swap request needs swap_shift_id", request_id=request.id)
        if request.swap_with_user_id and request.swap_with_user_id == request.user_id:
            raise ValidationError("Cannot swap a shift with yourself", request_id=request.id)
        self._offered_shift(request)

    def _offered_shift(self, request: Request):
        """The shift a swap request offers; must be live and owned by the requester."""
        shift = self.engine.assignments.get(request.swap_shift_id)
        if shift is None:
            raise NotFoundError(
                f"Offered shift {request.swap_shift_id} not found",
                request_id=request.id,
                assignment_id=request.swap_shift_id,
            )
        if shift.user_id != request.user_id:
            raise ValidationError(
                f"Shift {shift.id} belongs to {shift.user_id}, not {request.user_id}",
                request_id=request.id,
                assignment_id=shift.id,
            )
        if shift.status in (ShiftStatus.COMPLETED, ShiftStatus.CANCELLED):
            raise ValidationError(
                f"Shift {shift.id} is {shift.status.value} and cannot be swapped",
                request_id=request.id,
                assignment_id=shift.id,
            )
        return shift

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_request(self, request_id: str) -> Request:
        return self._require(request_id)

    def list_requests(
        self,
        user_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
    ) -> List[Request]:
        found = self.requests.list(user_id=user_id, status=status, request_type=request_type)
        return sorted(found, key=lambda r: (r.start_date, r.id))

    # -----------------------------------------------------------------------
    # Requester operations
    # -----------------------------------------------------------------------

    def submit_request(self, draft: RequestDraft, actor_id: str) -> Request:
        now = self.clock()
        request = Request(
            id=self.id_factory(),
            user_id=draft.user_id,
            type=coerce_enum(RequestType, draft.type),
            start_date=draft.start_date,
            end_date=draft.end_date,
            reason=draft.reason,
            swap_shift_id=draft.swap_shift_id,
            swap_with_user_id=draft.swap_with_user_id,
            created_at=now,
            updated_at=now,
        )
        self._validate(request)
        stored = self.requests.save(request)
        logger.info(f"Request {stored.id} ({stored.type.value}) submitted for {stored.user_id} by {actor_id}")
        return stored

    def update_request(self, request_id: str, patch: Dict[str, Any], actor_id: str) -> Request:
        unknown = set(patch) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot patch fields: {sorted(unknown)}", request_id=request_id)
        with self.locks.hold(request_scope(request_id)):
            current = self._require(request_id)
            if current.status is not RequestStatus.PENDING:
                raise InvalidTransitionError(
                    f"Request {request_id} is {current.status.value} and can no longer be edited",
                    request_id=request_id,
                )
            merged = current.copy(**patch)
            self._validate(merged)
            merged.updated_at = self.clock()
            stored = self.requests.save(merged)
        logger.info(f"Request {request_id} updated by {actor_id}: {sorted(patch)}")
        return stored

    def withdraw(self, request_id: str, actor_id: str) -> Request:
        with self.locks.hold(request_scope(request_id)):
            current = self._require(request_id)
            self._transition(current, RequestStatus.CANCELLED)
            stored = self.requests.save(current.copy(status=RequestStatus.CANCELLED, updated_at=self.clock()))
        logger.info(f"Request {request_id} withdrawn by {actor_id}")
        return stored

    def delete_request(self, request_id: str, actor_id: str) -> None:
        if not self.requests.delete(request_id):
            raise NotFoundError(f"Request {request_id} not found", request_id=request_id)
        logger.info(f"Request {request_id} deleted by {actor_id}")

    # -----------------------------------------------------------------------
    # Review
    # -----------------------------------------------------------------------

    def _validate_swap(self, request: Request) -> None:
        shift = self._offered_shift(request)
        if not request.swap_with_user_id:
            logger.debug(f"Request {request.id}: shift {shift.id} released to any volunteer")
            return
        violation = self.engine.check_reassignment(shift.id, request.swap_with_user_id)
        if violation is not None:
            logger.warning(f"Swap approval for {request.id} blocked: {violation}")
            raise ConflictError(violation)

    def review(self, review_input: RequestReviewInput, actor_id: str) -> Request:
        decision = coerce_enum(ReviewDecision, review_input.decision)
        new_status = _DECISION_STATUS[decision]

        while True:
            target = self._swap_target(self._require(review_input.request_id))
            scopes = [request_scope(review_input.request_id)]
            if target:
                scopes.append(staff_scope(target))

            with self.locks.hold(*scopes):
                current = self._require(review_input.request_id)
                if self._swap_target(current) != target:
                    # counter-party edited while waiting for the lock
                    continue
                stored = self._apply_review(current, decision, new_status, review_input.notes, actor_id)
                break

        logger.info(f"Request {stored.id} {new_status.value} by {actor_id}")
        return stored

    @staticmethod
    def _swap_target(request: Request) -> Optional[str]:
        if request.type is RequestType.SWAP and request.swap_with_user_id:
            return request.swap_with_user_id
        return None

    def _apply_review(
        self,
        current: Request,
        decision: ReviewDecision,
        new_status: RequestStatus,
        notes: Optional[str],
        actor_id: str,
    ) -> Request:
        """Transition check, swap re-validation and commit; caller holds the locks."""
        self._transition(current, new_status)
        if decision is ReviewDecision.APPROVE and current.type is RequestType.SWAP:
            self._validate_swap(current)

        now = self.clock()
        reviewed = current.copy(
            status=new_status,
            reviewed_by=actor_id,
            reviewed_at=now,
            review_notes=notes,
            updated_at=now,
        )
        return self.requests.save(reviewed)
