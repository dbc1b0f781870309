"""
Create the administrator account from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME.

Does nothing if a user with that email already exists.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from campus_rides.admin import run_create_admin
from campus_rides.config import MaintenanceConfig, get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the admin user")
    parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    return run_create_admin(
        MaintenanceConfig.from_settings(settings),
        email=settings.admin_email,
        password=settings.admin_password,
        name=settings.admin_name,
    )


if __name__ == "__main__":
    raise SystemExit(main())
