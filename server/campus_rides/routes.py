"""
HTTP routes for health checks and read-only maintenance reports.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from campus_rides.config import get_settings
from campus_rides.dependencies import get_document_store
from campus_rides.indexes import verify_indexes
from campus_rides.schemas import HealthResponse, IndexReportResponse
from campus_rides.store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

health_router = APIRouter()
router = APIRouter()


@health_router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=get_settings().environment,
    )


@router.get("/maintenance/indexes", response_model=IndexReportResponse)
def index_report(store: DocumentStore = Depends(get_document_store)):
    """
    Enumerate indexes on the managed collections. Nothing is created or dropped.
    """
    try:
        report = verify_indexes(store)
    except StoreError as exc:
        logger.error("Index report failed: %s", exc)
        raise HTTPException(status_code=503, detail="Document store unavailable")
    return report.as_dict()
