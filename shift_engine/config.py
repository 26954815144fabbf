"""
config.py — Directory loaders for the Shift Assignment Engine

Loads staff, departments and duty positions from CSV into a StaffDirectory.
Re-exports schedule_config rule constants.

Flag columns (active, is_emergency, requires_*) accept yes/no, true/false,
1/0 and y/n; blank cells fall back to the column default.
"""

import logging
import math
from pathlib import Path
from typing import Any, List, Optional

from shift_engine.models import Department, DutyPosition, StaffMember, StaffRole
from shift_engine.repository import StaffDirectory

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"
STAFF_FILENAME       = "staff.csv"
DEPARTMENTS_FILENAME = "departments.csv"
POSITIONS_FILENAME   = "positions.csv"


# ---------------------------------------------------------------------------
# Re-export from schedule_config
# ---------------------------------------------------------------------------
from shift_engine.schedule_config import (    # noqa: E402
    ACTIVE_STATUSES,
    DEFAULT_SHIFT_HOURS,
    DEFAULT_SHIFT_START_HOUR,
    REST_DAYS_AFTER_DUTY,
    get_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return not str(value).strip()


def _parse_yes_no(value: Any, default: bool = False) -> bool:
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("yes", "true", "1", "y")


def _text(value: Any, default: str = "") -> str:
    if _is_blank(value):
        return default
    return str(value).strip()


def _parse_role(value: Any) -> StaffRole:
    raw = _text(value, StaffRole.STAFF.value).lower()
    if raw in ("admin", "administrator"):
        return StaffRole.ADMINISTRATOR
    return StaffRole.STAFF


def _read_csv(path: Path):
    import pandas as pd

    if not path.exists():
        raise FileNotFoundError(f"Directory file not found: {path}")
    return pd.read_csv(path, dtype=str, keep_default_na=False)


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def load_staff(staff_path: Optional[Path] = None) -> List[StaffMember]:
    """
    Load staff from staff.csv.

    Expected columns:
      id, name, department_id, role, active, email (optional), position (optional)

    Row order is kept: it is the round-robin rotation order.
    """
    path = staff_path or DEFAULT_CONFIG_DIR / STAFF_FILENAME
    df = _read_csv(path)

    staff: List[StaffMember] = []
    for _, row in df.iterrows():
        staff.append(StaffMember(
            id=            _text(row["id"]),
            name=          _text(row["name"]),
            department_id= _text(row["department_id"]),
            role=          _parse_role(row.get("role")),
            active=        _parse_yes_no(row.get("active"), default=True),
            email=         _text(row.get("email")),
            position=      _text(row.get("position")),
        ))

    logger.info(f"Loaded {len(staff)} staff members from {path}")
    return staff


def load_departments(departments_path: Optional[Path] = None) -> List[Department]:
    """
    Load departments from departments.csv.

    Expected columns:
      id, name, default_shift_hours, requires_weekend_coverage,
      requires_holiday_coverage, active
    """
    path = departments_path or DEFAULT_CONFIG_DIR / DEPARTMENTS_FILENAME
    df = _read_csv(path)

    departments: List[Department] = []
    for _, row in df.iterrows():
        hours = _text(row.get("default_shift_hours"))
        departments.append(Department(
            id=                        _text(row["id"]),
            name=                      _text(row["name"]),
            default_shift_hours=       int(hours) if hours else DEFAULT_SHIFT_HOURS,
            requires_weekend_coverage= _parse_yes_no(row.get("requires_weekend_coverage")),
            requires_holiday_coverage= _parse_yes_no(row.get("requires_holiday_coverage")),
            active=                    _parse_yes_no(row.get("active"), default=True),
        ))

    logger.info(f"Loaded {len(departments)} departments from {path}")
    return departments


def load_positions(positions_path: Optional[Path] = None) -> List[DutyPosition]:
    """
    Load duty positions ("rooms") from positions.csv.

    Expected columns:
      id, department_id, name, is_emergency, active, seniority_required (optional)
    """
    path = positions_path or DEFAULT_CONFIG_DIR / POSITIONS_FILENAME
    df = _read_csv(path)

    positions: List[DutyPosition] = []
    for _, row in df.iterrows():
        positions.append(DutyPosition(
            id=                 _text(row["id"]),
            department_id=      _text(row["department_id"]),
            name=               _text(row.get("name")),
            is_emergency=       _parse_yes_no(row.get("is_emergency")),
            active=             _parse_yes_no(row.get("active"), default=True),
            seniority_required= _text(row.get("seniority_required")) or None,
        ))

    logger.info(f"Loaded {len(positions)} duty positions from {path}")
    return positions


def load_directory(config_dir: Optional[Path] = None) -> StaffDirectory:
    """Load staff.csv, departments.csv and positions.csv from one directory."""
    base = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
    return StaffDirectory(
        staff=load_staff(base / STAFF_FILENAME),
        departments=load_departments(base / DEPARTMENTS_FILENAME),
        positions=load_positions(base / POSITIONS_FILENAME),
    )


# ---------------------------------------------------------------------------
# Quick validation
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    directory = load_directory()
    print(f"Loaded {len(directory.staff)} staff, {len(directory.departments)} departments, "
          f"{len(directory.positions)} positions")
    for d in directory.departments:
        pool = directory.eligible_pool(d.id)
        rooms = directory.positions_for(d.id)
        print(f"  {d.id:<6} {d.name:<20} staff={len(pool):2d} rooms={len(rooms)} shift={d.default_shift_hours}h")
