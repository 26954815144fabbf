#!/usr/bin/env python3
"""
Dry Run - Generate a department schedule without touching real storage

Usage:
  python scripts/run_dry_run.py --department CARD --start 2025-07-01 --days 14

Outputs to outputs/ directory.
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from shift_engine.dry_run import main

if __name__ == "__main__":
    main()
