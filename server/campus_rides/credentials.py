"""
Password backfill for users that have no usable credential.

Every affected user receives the same default password, so it is hashed
once per run and the hash is written with a single bulk update that also
clears any pending password-reset token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import bcrypt

from campus_rides.config import FALLBACK_USER_PASSWORD, MaintenanceConfig
from campus_rides.store import DocumentStore, StoreFactory, open_store

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    matched: int
    modified: int
    password_hash: Optional[str] = None
    used_fallback_secret: bool = False

    @property
    def skipped(self) -> bool:
        return self.matched == 0


def hash_password(secret: str, cost: int) -> str:
    salt = bcrypt.gensalt(rounds=cost)
    return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("utf-8")


def verify_password(secret: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(secret.encode("utf-8"), password_hash.encode("utf-8"))


def backfill_passwords(store: DocumentStore, config: MaintenanceConfig) -> BackfillResult:
    users_needing_update = store.count_users_missing_password()
    if users_needing_update == 0:
        logger.info("All users already have passwords. No updates needed.")
        return BackfillResult(matched=0, modified=0)

    logger.info(
        "Found %d user(s) without a password. Hashing default password...",
        users_needing_update,
    )
    password_hash = hash_password(config.secret, config.hash_cost)

    modified = store.set_password_for_users_missing_password(password_hash)
    logger.info("Updated %d user(s) with the new password.", modified)

    if config.uses_fallback_secret:
        logger.warning(
            "DEFAULT_USER_PASSWORD was not set. Used fallback password `%s`.",
            FALLBACK_USER_PASSWORD,
        )
    logger.info(
        "Backfill complete. Please communicate the new password to affected "
        "users and instruct them to change it."
    )
    return BackfillResult(
        matched=users_needing_update,
        modified=modified,
        password_hash=password_hash,
        used_fallback_secret=config.uses_fallback_secret,
    )


def run_backfill(
    config: MaintenanceConfig, *, factory: Optional[StoreFactory] = None
) -> int:
    """Run the backfill against a fresh connection and return a process exit code."""
    try:
        with open_store(config, factory=factory) as store:
            backfill_passwords(store, config)
    except Exception:
        logger.exception("Error while backfilling passwords")
        return 1
    return 0
