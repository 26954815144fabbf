"""
schedule_config.py — Scheduling rules and runtime settings

RULES
─────
  Conflict rules (hard, checked on every create / reassignment):
    • DOUBLE_BOOKING    one non-cancelled assignment per staff member per day
    • MISSING_REST_DAY  no assignment on the day after a previous duty day
  Emergency duty gets its follow-on leave day through MISSING_REST_DAY; no
  separate leave record is created.

LIFECYCLE
─────────
  DRAFT → PUBLISHED → COMPLETED
  DRAFT | PUBLISHED → CANCELLED
  COMPLETED and CANCELLED are terminal.

  Request: PENDING → APPROVED | REJECTED | CANCELLED (all terminal).

GENERATION
──────────
  Round-robin over the department's active staff, one shift per day,
  starting at DEFAULT_SHIFT_START_HOUR and lasting the department's
  default_shift_hours (DEFAULT_SHIFT_HOURS when unset).

ENVIRONMENT
───────────
  SHIFT_ENGINE_TIMEZONE   IANA zone used for calendar-day comparison
                          (unset: naive datetimes as local time)
  SHIFT_ENGINE_API_URL    base URL for ApiAssignmentRepository
  SHIFT_ENGINE_API_KEY    bearer token for ApiAssignmentRepository
"""

import os
from typing import Any, Dict, FrozenSet, Optional
from zoneinfo import ZoneInfo

from shift_engine.models import RequestStatus, ShiftStatus

# ---------------------------------------------------------------------------
# Conflict rules
# ---------------------------------------------------------------------------
REST_DAYS_AFTER_DUTY = 1

# Statuses that occupy a calendar day for conflict purposes
ACTIVE_STATUSES: FrozenSet[ShiftStatus] = frozenset({
    ShiftStatus.DRAFT,
    ShiftStatus.PUBLISHED,
    ShiftStatus.COMPLETED,
})

# ---------------------------------------------------------------------------
# Lifecycles
# ---------------------------------------------------------------------------
STATUS_TRANSITIONS: Dict[ShiftStatus, FrozenSet[ShiftStatus]] = {
    ShiftStatus.DRAFT:     frozenset({ShiftStatus.PUBLISHED, ShiftStatus.CANCELLED}),
    ShiftStatus.PUBLISHED: frozenset({ShiftStatus.COMPLETED, ShiftStatus.CANCELLED}),
    ShiftStatus.COMPLETED: frozenset(),
    ShiftStatus.CANCELLED: frozenset(),
}

REQUEST_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING:   frozenset({
        RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED,
    }),
    RequestStatus.APPROVED:  frozenset(),
    RequestStatus.REJECTED:  frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

# ---------------------------------------------------------------------------
# Generation defaults
# ---------------------------------------------------------------------------
DEFAULT_SHIFT_HOURS = 24
DEFAULT_SHIFT_START_HOUR = 8

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

def _load_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name or not name.strip():
        return None
    return ZoneInfo(name.strip())


REFERENCE_TIMEZONE: Optional[ZoneInfo] = _load_timezone(os.getenv("SHIFT_ENGINE_TIMEZONE"))

API_BASE_URL = os.getenv("SHIFT_ENGINE_API_URL", "http://localhost:8000/api/v1").rstrip("/")
API_KEY = os.getenv("SHIFT_ENGINE_API_KEY", "")
API_TIMEOUT_SECONDS = 30


def get_config() -> Dict[str, Any]:
    return {
        "rest_days_after_duty":     REST_DAYS_AFTER_DUTY,
        "active_statuses":          sorted(s.value for s in ACTIVE_STATUSES),
        "default_shift_hours":      DEFAULT_SHIFT_HOURS,
        "default_shift_start_hour": DEFAULT_SHIFT_START_HOUR,
        "reference_timezone":       str(REFERENCE_TIMEZONE) if REFERENCE_TIMEZONE else None,
        "api_base_url":             API_BASE_URL,
    }
