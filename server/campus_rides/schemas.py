"""
Pydantic schemas for the maintenance FastAPI surface.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    database: str = "MongoDB"
    environment: str


class IndexModel(BaseModel):
    name: str
    key: Dict[str, Any]
    unique: bool = False


class ExpectedIndexModel(BaseModel):
    key: Dict[str, Any]
    unique: bool = False


class CollectionIndexResponse(BaseModel):
    collection: str
    indexes: List[IndexModel]
    document_count: int
    expected_count: int
    missing: List[ExpectedIndexModel] = Field(default_factory=list)
    unexpected: List[IndexModel] = Field(default_factory=list)
    unique_mismatches: List[IndexModel] = Field(default_factory=list)
    consistent: bool


class DuplicateRouteModel(BaseModel):
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    count: int
    ids: List[str] = Field(default_factory=list)


class IndexReportResponse(BaseModel):
    collections: List[CollectionIndexResponse]
    duplicate_routes: List[DuplicateRouteModel] = Field(default_factory=list)
    consistent: bool
