"""
Idempotent bootstrap of the administrator account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from campus_rides.config import MaintenanceConfig
from campus_rides.credentials import hash_password
from campus_rides.store import DocumentStore, StoreFactory, open_store

logger = logging.getLogger(__name__)

OLD_ADMIN_EMAIL = "admin@iitd.ac.in"


@dataclass
class AdminResult:
    email: str
    created: bool
    user_id: Optional[str] = None


def create_admin_user(
    store: DocumentStore,
    config: MaintenanceConfig,
    *,
    email: str,
    password: str,
    name: str,
) -> AdminResult:
    email = email.strip().lower()
    logger.info("Creating admin user %s", email)

    existing = store.find_user_by_email(email)
    if existing:
        logger.warning(
            "Admin user with email %s already exists. Skipping creation; "
            "use the password backfill to reset missing passwords.",
            email,
        )
        return AdminResult(email=email, created=False, user_id=str(existing.get("_id")))

    now = datetime.now(timezone.utc)
    user_id = store.insert_user(
        {
            "name": name,
            "email": email,
            "password": hash_password(password, config.hash_cost),
            "role": "admin",
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    logger.info("Admin user created successfully")
    logger.warning("Change the default password after first login!")
    return AdminResult(email=email, created=True, user_id=user_id)


def run_create_admin(
    config: MaintenanceConfig,
    *,
    email: str,
    password: str,
    name: str,
    factory: Optional[StoreFactory] = None,
) -> int:
    try:
        with open_store(config, factory=factory) as store:
            create_admin_user(store, config, email=email, password=password, name=name)
    except Exception:
        logger.exception("Error creating admin user")
        return 1
    return 0


@dataclass
class EmailUpdateResult:
    old_email: str
    new_email: str
    updated: bool
    reason: Optional[str] = None


def update_admin_email(
    store: DocumentStore, *, old_email: str = OLD_ADMIN_EMAIL, new_email: str
) -> EmailUpdateResult:
    old_email = old_email.strip().lower()
    new_email = new_email.strip().lower()
    logger.info("Updating admin email from %s to %s", old_email, new_email)

    old_admin = store.find_user_by_email(old_email)
    if not old_admin:
        logger.warning("Admin user with email %s not found. Nothing to update.", old_email)
        return EmailUpdateResult(old_email, new_email, updated=False, reason="not_found")

    if store.find_user_by_email(new_email):
        logger.warning(
            "Admin user with email %s already exists. Skipping update to avoid duplicate.",
            new_email,
        )
        return EmailUpdateResult(old_email, new_email, updated=False, reason="already_exists")

    store.update_user_email(old_admin["_id"], new_email)
    logger.info("Admin email updated successfully. New login email: %s", new_email)
    return EmailUpdateResult(old_email, new_email, updated=True)


def run_update_admin_email(
    config: MaintenanceConfig,
    *,
    new_email: str,
    old_email: str = OLD_ADMIN_EMAIL,
    factory: Optional[StoreFactory] = None,
) -> int:
    try:
        with open_store(config, factory=factory) as store:
            update_admin_email(store, old_email=old_email, new_email=new_email)
    except Exception:
        logger.exception("Error updating admin email")
        return 1
    return 0
