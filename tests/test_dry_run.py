"""
tests/test_dry_run.py

End-to-end dry run against the sample directory in config/:
  1. Load and validate the directory
  2. Generate a two-week Cardiology schedule
  3. Audit (no violations expected)
  4. Verify CSV / JSON exports
  5. Re-run on top of the exported JSON: nothing new is created

Run with:
  python -m pytest tests/test_dry_run.py -v
"""

import csv
import json
import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from shift_engine.dry_run import run_dry_run

START = date(2025, 7, 1)


@pytest.fixture
def result(tmp_path):
    return run_dry_run("CARD", START, 14, output_dir=tmp_path)


class TestDryRun:

    def test_schedule_generated(self, result):
        created = result["created"]
        assert len(created) == 14
        assert [a.user_id for a in created[:4]] == ["2", "5", "6", "2"]
        assert "8" not in {a.user_id for a in created}

    def test_no_violations(self, result):
        assert result["violations"] == []

    def test_even_workload(self, result):
        counts = result["metrics"]["counts"]
        assert set(counts) == {"2", "5", "6"}
        assert max(counts.values()) - min(counts.values()) <= 1

    def test_exports(self, result):
        csv_path = result["outputs"]["csv"]
        json_path = result["outputs"]["json"]
        assert csv_path.exists()
        assert json_path.exists()

        with open(csv_path) as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 14
        assert rows[0]["date"] == "2025-07-01"
        assert rows[0]["staff"] == "John Smith"
        assert rows[0]["room"] == "R3"

        with open(json_path) as f:
            assert len(json.load(f)) == 14

    def test_rerun_on_existing_creates_nothing(self, result, tmp_path):
        again = run_dry_run(
            "CARD", START, 14,
            output_dir=tmp_path / "second",
            existing_path=result["outputs"]["json"],
        )
        assert again["created"] == []
        assert again["violations"] == []


class TestDryRunFailures:

    def test_empty_department_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            run_dry_run("ADMIN-NOPE", START, 3, output_dir=tmp_path)

    def test_broken_directory_exits(self, tmp_path):
        config = tmp_path / "config"
        config.mkdir()
        (config / "staff.csv").write_text("id,name,department_id\n1,Ann,CARD\n")
        (config / "departments.csv").write_text("id,name\nCARD,Cardiology\n")
        (config / "positions.csv").write_text("id,department_id,name\nR3,NOPE,Ward\n")

        with pytest.raises(SystemExit):
            run_dry_run("CARD", START, 3, config_dir=config, output_dir=tmp_path / "out")
