"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import HTTPException

from campus_rides.config import get_settings
from campus_rides.store import (
    DocumentStore,
    InMemoryDocumentStore,
    MongoDocumentStore,
    StoreError,
)

_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton store so the service reuses one client connection pool.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _document_store = InMemoryDocumentStore()
    else:
        try:
            _document_store = MongoDocumentStore(
                settings.mongodb_uri, settings.mongodb_database
            )
        except StoreError as exc:
            raise HTTPException(
                status_code=503, detail="Document store unavailable"
            ) from exc
    return _document_store
