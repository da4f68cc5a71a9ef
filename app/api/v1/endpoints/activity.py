"""
Dashboard feed endpoints: activity log, derived alerts, headline metrics.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_activity_sink
from app.core.config import ACTIVITY_FEED_LIMIT
from app.schemas.activity import ActivityResponse, DashboardMetrics, SecurityAlert
from app.services.activity import ActivitySink
from app.services.alerts import derive_alerts

router = APIRouter()


@router.get("/activity", response_model=List[ActivityResponse], tags=["activity"])
async def list_activity(
    limit: int = Query(ACTIVITY_FEED_LIMIT, ge=1, le=200),
    activity: ActivitySink = Depends(get_activity_sink),
):
    """Most recent activity, newest first."""
    return await activity.recent(limit)


@router.get("/alerts", response_model=List[SecurityAlert], tags=["alerts"])
async def list_alerts(
    activity: ActivitySink = Depends(get_activity_sink),
):
    """
    Security alerts derived from the activity feed.

    Resolve/dismiss state is kept by the client and is not stored here.
    """
    feed = await activity.recent(ACTIVITY_FEED_LIMIT)
    return derive_alerts(feed)


@router.get("/dashboard/metrics", response_model=DashboardMetrics, tags=["dashboard"])
async def dashboard_metrics(
    activity: ActivitySink = Depends(get_activity_sink),
):
    """Headline counters (also pushed on the metrics topic)."""
    return await activity.dashboard_metrics()
