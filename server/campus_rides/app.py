"""
FastAPI application entry point for the maintenance service.
"""

from __future__ import annotations

from fastapi import FastAPI

from campus_rides.config import get_settings
from campus_rides.routes import health_router, router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Campus Rides Maintenance", version="0.1.0")
    app.include_router(health_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
