"""
Verify indexes on the users, ride bills and ride locations collections.

Read-only: indexes are created by the application itself, so this only
reports what is present, what is missing and any duplicate ride routes
that would block the unique route index.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from campus_rides.config import MaintenanceConfig, get_settings
from campus_rides.indexes import run_verification


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify collection indexes")
    parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    config = MaintenanceConfig.from_settings(get_settings())
    return run_verification(config)


if __name__ == "__main__":
    raise SystemExit(main())
