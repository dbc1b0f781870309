"""
Read-only index verification for the users, ride bills and ride locations
collections.

Indexes are owned by the live application's schema layer; this module only
enumerates what exists and compares it against the catalogue below. It never
creates or drops anything.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from campus_rides.config import MaintenanceConfig
from campus_rides.store import (
    RIDE_BILLS,
    RIDE_LOCATIONS,
    USERS,
    DocumentStore,
    DuplicateRoute,
    IndexSpec,
    StoreFactory,
    open_store,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpectedIndex:
    key: tuple
    unique: bool = False

    @property
    def key_dict(self) -> Dict[str, Any]:
        return dict(self.key)


def _expect(*key: tuple, unique: bool = False) -> ExpectedIndex:
    return ExpectedIndex(key=tuple(key), unique=unique)


# Mirrors the index declarations on the application's schemas.
EXPECTED_INDEXES: Dict[str, list[ExpectedIndex]] = {
    USERS: [
        _expect(("_id", 1)),
        _expect(("email", 1), unique=True),
    ],
    RIDE_BILLS: [
        _expect(("_id", 1)),
        _expect(("rideId", 1), unique=True),
        _expect(("studentId", 1)),
        _expect(("driverId", 1)),
        _expect(("date", -1)),
        _expect(("status", 1)),
        _expect(("createdAt", -1)),
        _expect(("fare", -1)),
        _expect(("driverId", 1), ("date", -1)),
        _expect(("studentId", 1), ("date", -1)),
        _expect(("status", 1), ("date", -1)),
        _expect(("driverId", 1), ("status", 1)),
        _expect(("date", -1), ("createdAt", -1)),
        # studentName / driverName / location text index
        _expect(("_fts", "text"), ("_ftsx", 1)),
    ],
    RIDE_LOCATIONS: [
        _expect(("_id", 1)),
        _expect(("fromLocation", 1)),
        _expect(("toLocation", 1)),
        _expect(("fromLocation", 1), ("toLocation", 1), unique=True),
        _expect(("fare", 1)),
        _expect(("createdAt", -1)),
    ],
}

COLLECTION_LABELS = {
    USERS: "users",
    RIDE_BILLS: "ride bills",
    RIDE_LOCATIONS: "ride locations",
}


@dataclass
class CollectionIndexReport:
    collection: str
    indexes: list[IndexSpec]
    document_count: int
    expected_count: int
    missing: list[ExpectedIndex] = field(default_factory=list)
    unexpected: list[IndexSpec] = field(default_factory=list)
    unique_mismatches: list[IndexSpec] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not (self.missing or self.unexpected or self.unique_mismatches)

    def as_dict(self) -> dict:
        return {
            "collection": self.collection,
            "indexes": [index.as_dict() for index in self.indexes],
            "document_count": self.document_count,
            "expected_count": self.expected_count,
            "missing": [
                {"key": expected.key_dict, "unique": expected.unique}
                for expected in self.missing
            ],
            "unexpected": [index.as_dict() for index in self.unexpected],
            "unique_mismatches": [index.as_dict() for index in self.unique_mismatches],
            "consistent": self.consistent,
        }


@dataclass
class MigrationReport:
    collections: list[CollectionIndexReport]
    duplicate_routes: list[DuplicateRoute] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.duplicate_routes and all(
            report.consistent for report in self.collections
        )

    def for_collection(self, collection: str) -> Optional[CollectionIndexReport]:
        for report in self.collections:
            if report.collection == collection:
                return report
        return None

    def as_dict(self) -> dict:
        return {
            "collections": [report.as_dict() for report in self.collections],
            "duplicate_routes": [dup.as_dict() for dup in self.duplicate_routes],
            "consistent": self.consistent,
        }


def compare_indexes(
    collection: str,
    indexes: list[IndexSpec],
    expected: list[ExpectedIndex],
    document_count: int = 0,
) -> CollectionIndexReport:
    present = {index.signature: index for index in indexes}
    wanted = {item.key: item for item in expected}

    missing = [item for key, item in wanted.items() if key not in present]
    unexpected = [index for key, index in present.items() if key not in wanted]
    unique_mismatches = [
        index
        for key, index in present.items()
        if key in wanted and wanted[key].unique and not index.unique
    ]
    return CollectionIndexReport(
        collection=collection,
        indexes=indexes,
        document_count=document_count,
        expected_count=len(expected),
        missing=missing,
        unexpected=unexpected,
        unique_mismatches=unique_mismatches,
    )


def _log_collection(report: CollectionIndexReport) -> None:
    label = COLLECTION_LABELS.get(report.collection, report.collection)
    logger.info("Found %d indexes on %s collection", len(report.indexes), label)
    for index in report.indexes:
        suffix = " (UNIQUE)" if index.unique else ""
        logger.info("  - %s: %s%s", index.name, json.dumps(index.key), suffix)
    for expected in report.missing:
        logger.warning("  missing index on %s: %s", label, json.dumps(expected.key_dict))
    for index in report.unexpected:
        logger.warning("  unexpected index on %s: %s", label, index.name)
    for index in report.unique_mismatches:
        logger.warning("  index %s on %s should be unique", index.name, label)
    logger.info("  Total documents: %d", report.document_count)


def verify_indexes(
    store: DocumentStore,
    expected: Optional[Dict[str, list[ExpectedIndex]]] = None,
) -> MigrationReport:
    catalogue = EXPECTED_INDEXES if expected is None else expected
    reports = []
    for collection, wanted in catalogue.items():
        logger.info("Checking %s collection indexes...", COLLECTION_LABELS.get(collection, collection))
        indexes = store.list_indexes(collection)
        report = compare_indexes(
            collection,
            indexes,
            wanted,
            document_count=store.count_documents(collection),
        )
        _log_collection(report)
        reports.append(report)

    duplicates: list[DuplicateRoute] = []
    if RIDE_LOCATIONS in catalogue:
        duplicates = store.find_duplicate_routes()
        if duplicates:
            logger.warning("Found %d duplicate route(s):", len(duplicates))
            for dup in duplicates:
                logger.warning(
                    "  - %s -> %s (%d entries)",
                    dup.from_location,
                    dup.to_location,
                    dup.count,
                )
            logger.warning(
                "Remove duplicates manually before the unique route index can be built."
            )

    report = MigrationReport(collections=reports, duplicate_routes=duplicates)
    log_summary(report)
    return report


def log_summary(report: MigrationReport) -> None:
    logger.info("Migration Summary:")
    for collection_report in report.collections:
        label = COLLECTION_LABELS.get(collection_report.collection, collection_report.collection)
        logger.info(
            "  %s collection: %d indexes expected, %d found",
            label.capitalize(),
            collection_report.expected_count,
            len(collection_report.indexes),
        )
    if report.consistent:
        logger.info("Database indexes verified (managed by the application schema)")
    else:
        logger.warning(
            "Index discrepancies found; the application creates indexes on startup"
        )


def run_verification(
    config: MaintenanceConfig, *, factory: Optional[StoreFactory] = None
) -> int:
    """Run the verification against a fresh connection and return a process exit code."""
    logger.info("Starting database migration check...")
    try:
        with open_store(config, factory=factory) as store:
            verify_indexes(store)
    except Exception:
        logger.exception("Error during migration")
        return 1
    logger.info("Database migration completed successfully!")
    return 0
