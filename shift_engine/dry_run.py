"""
dry_run.py — Generate a department schedule against an in-memory repository

Full orchestration:
  1. Load staff / department / duty-position directory
  2. Validate the directory
  3. Seed the repository from an existing assignments JSON (optional)
  4. Generate the round-robin schedule
  5. Audit the whole assignment set against the conflict rules
  6. Export CSV + JSON and print a workload summary

Nothing is written anywhere except the output directory.

Usage:
  python -m shift_engine.dry_run --department CARD --start 2025-07-01 --days 14
  python -m shift_engine.dry_run --department CARD --start 2025-07-01 --days 14 \
      --existing outputs/published.json
"""

import argparse
import csv
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from shift_engine.config import load_directory
from shift_engine.constraints import ConflictChecker
from shift_engine.date_utils import date_only
from shift_engine.engine import ShiftAssignmentEngine, calculate_workload_metrics
from shift_engine.errors import SchedulingError
from shift_engine.models import ShiftAssignment
from shift_engine.repository import InMemoryAssignmentRepository

logger = logging.getLogger(__name__)

OUTPUTS_DIR = PROJECT_ROOT / "outputs"
DRY_RUN_ACTOR = "dry-run"


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_to_csv(assignments: List[ShiftAssignment], output_path: Path, names: Dict[str, str]) -> None:
    """Flat CSV: date, room, staff_id, staff, status, emergency."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=["date", "room", "staff_id", "staff", "status", "emergency"]
        )
        writer.writeheader()
        for a in sorted(assignments, key=lambda a: (a.start, a.room_id)):
            writer.writerow({
                "date":      date_only(a.start).isoformat(),
                "room":      a.room_id,
                "staff_id":  a.user_id,
                "staff":     names.get(a.user_id, a.user_id),
                "status":    a.status.value,
                "emergency": "yes" if a.is_emergency else "no",
            })

    logger.info(f"CSV exported → {output_path}")


def load_existing(path: Path) -> List[ShiftAssignment]:
    with open(path) as f:
        data = json.load(f)
    return [ShiftAssignment.from_dict(entry) for entry in data]


# ---------------------------------------------------------------------------
# Main orchestrator
# ---------------------------------------------------------------------------

def run_dry_run(
    department_id: str,
    start_date: date,
    num_days: int,
    config_dir: Optional[Path] = None,
    output_dir: Path = OUTPUTS_DIR,
    existing_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Generate a schedule for one department without touching real storage.

    Returns:
        Dict with created assignments, violations, metrics, output paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    prefix = f"dry_run_{department_id}_{start_date}_{num_days}d"
    sep = "=" * 70

    print(f"\n{sep}")
    print(f"  DRY RUN — department {department_id}")
    print(f"  Period: {start_date} + {num_days} day(s)")
    print(f"{sep}\n")

    # ── 1. Directory ───────────────────────────────────────────────────────
    print("Step 1/5: Loading directory...")
    directory = load_directory(config_dir)
    print(f"  ✓ {len(directory.staff)} staff | {len(directory.departments)} departments | "
          f"{len(directory.positions)} positions")

    # ── 2. Validate ────────────────────────────────────────────────────────
    print("\nStep 2/5: Validating directory...")
    checker = ConflictChecker()
    errors, warnings = checker.validate_directory(
        directory.staff, directory.departments, directory.positions
    )
    for err in errors:
        print(f"  ✗ DIRECTORY ERROR: {err}")
    for w in warnings:
        print(f"  ⚠ WARNING: {w}")
    if errors:
        print("\n  ✗ Cannot proceed — fix directory errors above.")
        sys.exit(1)
    if not warnings:
        print("  ✓ Directory valid")

    # ── 3. Repository ──────────────────────────────────────────────────────
    existing = load_existing(existing_path) if existing_path else []
    repository = InMemoryAssignmentRepository(existing)
    engine = ShiftAssignmentEngine(repository, directory=directory, checker=checker)
    print(f"\nStep 3/5: Repository seeded with {len(existing)} existing assignment(s)")

    # ── 4. Generate ────────────────────────────────────────────────────────
    print("\nStep 4/5: Generating schedule...")
    try:
        created = engine.generate_schedule(department_id, start_date, num_days, actor_id=DRY_RUN_ACTOR)
    except SchedulingError as e:
        print(f"  ✗ {e}")
        sys.exit(1)
    print(f"  ✓ {len(created)} assignment(s) created, {num_days - len(created)} day(s) skipped")

    # ── 5. Audit + export ──────────────────────────────────────────────────
    print("\nStep 5/5: Auditing and exporting...")
    violations = engine.audit()
    status = "✓" if not violations else "✗"
    print(f"  {status} Conflict violations: {len(violations)}")
    for v in violations:
        print(f"    {v}")

    pool = directory.eligible_pool(department_id)
    metrics = calculate_workload_metrics(repository.list(), pool)
    names = {s.id: s.name for s in directory.staff}

    csv_path = output_dir / f"{prefix}_schedule.csv"
    json_path = output_dir / f"{prefix}_assignments.json"
    export_to_csv(created, csv_path, names)
    with open(json_path, "w") as f:
        json.dump([a.to_dict() for a in created], f, indent=2)
    print(f"  ✓ CSV:  {csv_path.name}")
    print(f"  ✓ JSON: {json_path.name}")

    # ── Summary ────────────────────────────────────────────────────────────
    print(f"\n{sep}")
    print("  WORKLOAD")
    print(f"{sep}")
    for staff_id, count in sorted(metrics["counts"].items(), key=lambda x: x[1], reverse=True):
        hours = metrics["hours_counts"][staff_id]
        print(f"    {names.get(staff_id, staff_id):<24} {count:3d} shift(s) {hours:7.1f} h")
    print(f"\n  Count CV: {metrics['cv']:.2f}%   Hours CV: {metrics['hours_cv']:.2f}%")
    print(f"\n{sep}\n")

    return {
        "created":    created,
        "violations": violations,
        "metrics":    metrics,
        "outputs": {
            "csv":  csv_path,
            "json": json_path,
        },
    }


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Dry-run schedule generation for one department"
    )
    parser.add_argument("--department", required=True, help="Department id (e.g. CARD)")
    parser.add_argument("--start",      required=True, help="Start date YYYY-MM-DD")
    parser.add_argument("--days",       required=True, type=int, help="Number of days to generate")
    parser.add_argument("--config-dir", default=None,  help="Directory with staff/departments/positions CSVs")
    parser.add_argument("--output-dir", default=None,  help="Output directory (default: outputs/)")
    parser.add_argument("--existing",   default=None,  help="JSON list of assignments already committed")
    parser.add_argument("--verbose",    action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        start = datetime.strptime(args.start, "%Y-%m-%d").date()
    except ValueError as e:
        print(f"Invalid date format: {e}")
        sys.exit(1)

    if args.days < 0:
        print("Error: --days must be zero or more")
        sys.exit(1)

    run_dry_run(
        args.department,
        start,
        args.days,
        config_dir=Path(args.config_dir) if args.config_dir else None,
        output_dir=Path(args.output_dir) if args.output_dir else OUTPUTS_DIR,
        existing_path=Path(args.existing) if args.existing else None,
    )


if __name__ == "__main__":
    main()
