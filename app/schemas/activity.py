"""
Activity feed, alert, and dashboard metric schemas.
"""

from typing import Optional, Literal
from datetime import datetime

from app.schemas.common import CamelModel


class ActivityResponse(CamelModel):
    """One activity log entry as shown in the live feed."""

    id: int
    actor: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    description: str
    severity: Optional[str] = None
    timestamp: datetime


AlertType = Literal["critical", "warning", "info"]


class SecurityAlert(CamelModel):
    """Derived alert. Never persisted."""

    id: str
    type: AlertType
    title: str
    description: str
    timestamp: datetime
    resolved: bool = False
    severity: Optional[str] = None


class DashboardMetrics(CamelModel):
    """Headline counters pushed on every metrics update."""

    total_assets: int = 0
    total_audits: int = 0
    active_audits: int = 0
    completed_audits: int = 0
    open_vulnerabilities: int = 0
    critical_vulnerabilities: int = 0
