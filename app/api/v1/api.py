"""
API Router configuration.

Aggregates all v1 API endpoints with proper tagging and prefixes.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    activity,
    audits,
    reports,
    websocket,
)

api_router = APIRouter()

# Audit management and lifecycle
api_router.include_router(
    audits.router,
    prefix="/audits",
    tags=["audits"]
)

# Reports (CRUD, generation, download metadata)
api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["reports"]
)

# Activity feed, derived alerts, dashboard metrics
api_router.include_router(activity.router)

# Live updates
api_router.include_router(websocket.router, tags=["realtime"])
