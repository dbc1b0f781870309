"""
Backfill a default password for users that have none.

Users whose `password` is missing, null or empty receive the bcrypt hash of
DEFAULT_USER_PASSWORD (or the development fallback) and lose any pending
password-reset token. Running it again is a no-op.
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
from campus_rides.credentials import run_backfill


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Assign the default password to users without one"
    )
    parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    config = MaintenanceConfig.from_settings(get_settings())
    return run_backfill(config)


if __name__ == "__main__":
    raise SystemExit(main())
