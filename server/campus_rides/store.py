"""
Document store abstraction for MongoDB and an in-memory test implementation.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import ConfigurationError, ConnectionFailure, PyMongoError

from campus_rides.config import MaintenanceConfig

logger = logging.getLogger(__name__)

USERS = "users"
RIDE_BILLS = "ridebills"
RIDE_LOCATIONS = "ridelocations"

RESET_FIELDS = ("resetPasswordToken", "resetPasswordExpires")

MISSING_PASSWORD_FILTER = {
    "$or": [
        {"password": {"$exists": False}},
        {"password": None},
        {"password": ""},
    ]
}


class StoreError(Exception):
    """Base class for document store failures."""


class StoreConnectionError(StoreError):
    """The document store could not be reached."""


class StoreOperationError(StoreError):
    """The document store rejected a count, update or enumerate call."""


@dataclass
class IndexSpec:
    name: str
    key: Dict[str, Any]
    unique: bool = False

    @property
    def signature(self) -> tuple:
        return tuple(self.key.items())

    def as_dict(self) -> dict:
        return {"name": self.name, "key": dict(self.key), "unique": self.unique}


@dataclass
class DuplicateRoute:
    from_location: str
    to_location: str
    count: int
    ids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "from_location": self.from_location,
            "to_location": self.to_location,
            "count": self.count,
            "ids": list(self.ids),
        }


def default_index_name(key: Dict[str, Any]) -> str:
    """Build the name MongoDB gives an index created without an explicit name."""
    return "_".join(f"{field_name}_{direction}" for field_name, direction in key.items())


def is_missing_password(document: dict) -> bool:
    return document.get("password") in (None, "")


class DocumentStore(Protocol):
    """Interface for document store access used by the maintenance procedures."""

    def ping(self) -> None:
        ...

    def count_users_missing_password(self) -> int:
        ...

    def set_password_for_users_missing_password(self, password_hash: str) -> int:
        ...

    def list_indexes(self, collection: str) -> list[IndexSpec]:
        ...

    def count_documents(self, collection: str) -> int:
        ...

    def find_duplicate_routes(self) -> list[DuplicateRoute]:
        ...

    def find_user_by_email(self, email: str) -> Optional[dict]:
        ...

    def insert_user(self, document: dict) -> str:
        ...

    def update_user_email(self, user_id: Any, new_email: str) -> int:
        ...

    def close(self) -> None:
        ...


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, list[dict]] = defaultdict(list)
        self.indexes: Dict[str, list[IndexSpec]] = defaultdict(list)
        self.closed = False

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()
        self.indexes.clear()
        self.closed = False

    def insert_many(self, collection: str, documents: list[dict]) -> list[str]:
        ids = []
        for document in documents:
            stored = dict(document)
            stored.setdefault("_id", ObjectId())
            self.collections[collection].append(stored)
            ids.append(str(stored["_id"]))
        return ids

    def create_index(
        self,
        collection: str,
        key: Dict[str, Any],
        *,
        name: Optional[str] = None,
        unique: bool = False,
    ) -> str:
        spec = IndexSpec(name=name or default_index_name(key), key=dict(key), unique=unique)
        self.indexes[collection].append(spec)
        return spec.name

    def _check_open(self) -> None:
        if self.closed:
            raise StoreOperationError("document store is closed")

    def ping(self) -> None:
        self._check_open()

    def count_users_missing_password(self) -> int:
        self._check_open()
        return sum(1 for doc in self.collections.get(USERS, []) if is_missing_password(doc))

    def set_password_for_users_missing_password(self, password_hash: str) -> int:
        self._check_open()
        modified = 0
        for doc in self.collections.get(USERS, []):
            if not is_missing_password(doc):
                continue
            doc["password"] = password_hash
            for reset_field in RESET_FIELDS:
                doc.pop(reset_field, None)
            modified += 1
        return modified

    def list_indexes(self, collection: str) -> list[IndexSpec]:
        self._check_open()
        if collection not in self.collections and collection not in self.indexes:
            return []
        specs = [IndexSpec(name="_id_", key={"_id": 1})]
        specs.extend(
            IndexSpec(name=spec.name, key=dict(spec.key), unique=spec.unique)
            for spec in self.indexes.get(collection, [])
        )
        return specs

    def count_documents(self, collection: str) -> int:
        self._check_open()
        return len(self.collections.get(collection, []))

    def find_duplicate_routes(self) -> list[DuplicateRoute]:
        self._check_open()
        groups: Dict[tuple, list[str]] = {}
        for doc in self.collections.get(RIDE_LOCATIONS, []):
            route = (doc.get("fromLocation"), doc.get("toLocation"))
            groups.setdefault(route, []).append(str(doc["_id"]))
        duplicates = [
            DuplicateRoute(
                from_location=from_location,
                to_location=to_location,
                count=len(ids),
                ids=ids,
            )
            for (from_location, to_location), ids in groups.items()
            if len(ids) > 1
        ]
        duplicates.sort(key=lambda dup: (-dup.count, dup.from_location or "", dup.to_location or ""))
        return duplicates

    def find_user_by_email(self, email: str) -> Optional[dict]:
        self._check_open()
        for doc in self.collections.get(USERS, []):
            if doc.get("email") == email:
                return dict(doc)
        return None

    def insert_user(self, document: dict) -> str:
        self._check_open()
        return self.insert_many(USERS, [document])[0]

    def update_user_email(self, user_id: Any, new_email: str) -> int:
        self._check_open()
        for doc in self.collections.get(USERS, []):
            if doc["_id"] == user_id:
                if doc.get("email") == new_email:
                    return 0
                doc["email"] = new_email
                return 1
        return 0

    def close(self) -> None:
        self.closed = True


class MongoDocumentStore:
    """
    pymongo-backed implementation. The database is taken from the connection
    string when it names one, otherwise `database_name` is used.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str = "iitd-db",
        *,
        client: Optional[MongoClient] = None,
    ):
        if not connection_string:
            raise ValueError("MONGODB_URI is required for MongoDocumentStore")
        try:
            self.client = client or MongoClient(
                connection_string,
                serverSelectionTimeoutMS=10000,
                connectTimeoutMS=10000,
            )
            self.db = self.client.get_default_database(default=database_name)
        except ConfigurationError as exc:
            raise StoreConnectionError(f"Invalid MongoDB configuration: {exc}") from exc

    @classmethod
    def connect(cls, config: MaintenanceConfig) -> "MongoDocumentStore":
        """Create a store and verify the server answers before returning it."""
        store = cls(config.connection_string, config.database_name)
        try:
            store.ping()
        except StoreError:
            store.close()
            raise
        return store

    @contextmanager
    def _operation(self, description: str) -> Iterator[None]:
        try:
            yield
        except ConnectionFailure as exc:
            raise StoreConnectionError(f"{description} failed: {exc}") from exc
        except PyMongoError as exc:
            raise StoreOperationError(f"{description} failed: {exc}") from exc

    def ping(self) -> None:
        with self._operation("ping"):
            self.client.admin.command("ping")

    def count_users_missing_password(self) -> int:
        with self._operation("count users without password"):
            return self.db[USERS].count_documents(MISSING_PASSWORD_FILTER)

    def set_password_for_users_missing_password(self, password_hash: str) -> int:
        update = {
            "$set": {"password": password_hash},
            "$unset": {reset_field: "" for reset_field in RESET_FIELDS},
        }
        with self._operation("update users without password"):
            result = self.db[USERS].update_many(MISSING_PASSWORD_FILTER, update)
        return result.modified_count

    def list_indexes(self, collection: str) -> list[IndexSpec]:
        with self._operation(f"list indexes on {collection}"):
            return [
                IndexSpec(
                    name=index["name"],
                    key=dict(index["key"]),
                    unique=bool(index.get("unique", False)),
                )
                for index in self.db[collection].list_indexes()
            ]

    def count_documents(self, collection: str) -> int:
        with self._operation(f"count documents in {collection}"):
            return self.db[collection].count_documents({})

    def find_duplicate_routes(self) -> list[DuplicateRoute]:
        pipeline = [
            {
                "$group": {
                    "_id": {"fromLocation": "$fromLocation", "toLocation": "$toLocation"},
                    "count": {"$sum": 1},
                    "ids": {"$push": "$_id"},
                }
            },
            {"$match": {"count": {"$gt": 1}}},
            {"$sort": {"count": -1, "_id.fromLocation": 1, "_id.toLocation": 1}},
        ]
        with self._operation("find duplicate routes"):
            rows = list(self.db[RIDE_LOCATIONS].aggregate(pipeline))
        return [
            DuplicateRoute(
                from_location=row["_id"].get("fromLocation"),
                to_location=row["_id"].get("toLocation"),
                count=row["count"],
                ids=[str(doc_id) for doc_id in row.get("ids", [])],
            )
            for row in rows
        ]

    def find_user_by_email(self, email: str) -> Optional[dict]:
        with self._operation("find user"):
            return self.db[USERS].find_one({"email": email})

    def insert_user(self, document: dict) -> str:
        with self._operation("insert user"):
            result = self.db[USERS].insert_one(document)
        return str(result.inserted_id)

    def update_user_email(self, user_id: Any, new_email: str) -> int:
        with self._operation("update user email"):
            result = self.db[USERS].update_one(
                {"_id": user_id}, {"$set": {"email": new_email}}
            )
        return result.modified_count

    def close(self) -> None:
        self.client.close()


StoreFactory = Callable[[MaintenanceConfig], DocumentStore]


@contextmanager
def open_store(
    config: MaintenanceConfig, *, factory: Optional[StoreFactory] = None
) -> Iterator[DocumentStore]:
    """
    Acquire a store for the duration of a `with` block.

    The store is closed exactly once when the block exits, whether it
    finished or raised. A failed connect acquires nothing and closes nothing.
    """
    connect = factory or MongoDocumentStore.connect
    logger.info("Connecting to MongoDB...")
    store = connect(config)
    logger.info("Connected to MongoDB")
    try:
        yield store
    finally:
        store.close()
        logger.info("Database connection closed")
