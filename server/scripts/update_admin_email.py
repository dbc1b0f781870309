"""
Rename the admin account from admin@iitd.ac.in to ADMIN_EMAIL.

Skips when the old account is missing or the new email is already taken.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from campus_rides.admin import run_update_admin_email
from campus_rides.config import MaintenanceConfig, get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Update the admin user's email")
    parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    return run_update_admin_email(
        MaintenanceConfig.from_settings(settings),
        new_email=settings.admin_email,
    )


if __name__ == "__main__":
    raise SystemExit(main())
