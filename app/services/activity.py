"""
Activity and notification sink.

Every successful mutation ends here: one immutable activity entry for the
audit trail, then update events for live dashboard subscribers.

Neither step may fail the request that triggered it. The business write
has already committed by the time we get here, so a broken activity store
degrades to an in-process fallback buffer and a broken subscriber is simply
dropped.
"""

import logging
from collections import deque
from typing import Any, Deque, Optional

from sqlalchemy import select, func

from app.core.config import ACTIVITY_FALLBACK_SIZE, ACTIVITY_FEED_LIMIT
from app.core.database import PersistenceGateway
from app.core.errors import StorageError
from app.models.activity import ActivityLog
from app.models.asset import Asset, Vulnerability, OPEN_VULNERABILITY_STATUSES
from app.models.audit import Audit, AuditStatus
from app.schemas.activity import ActivityResponse, DashboardMetrics
from app.services.realtime import ConnectionManager

logger = logging.getLogger(__name__)

# Entries that could not be written to the database, newest last
_fallback: Deque[ActivityLog] = deque(maxlen=ACTIVITY_FALLBACK_SIZE)


def fallback_entries() -> list[ActivityLog]:
    """Activity entries kept locally because the store was unavailable."""
    return list(_fallback)


def to_activity_response(entry: ActivityLog) -> ActivityResponse:
    return ActivityResponse(
        id=entry.id,
        actor=entry.user_id,
        action=entry.action,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        description=entry.description,
        severity=entry.severity,
        timestamp=entry.timestamp,
    )


async def collect_dashboard_metrics(session) -> DashboardMetrics:
    """Headline counters in a single round trip."""
    open_statuses = list(OPEN_VULNERABILITY_STATUSES)

    def count(column, *criteria):
        query = select(func.count(column))
        if criteria:
            query = query.where(*criteria)
        return query.scalar_subquery()

    stmt = select(
        count(Asset.id, Asset.status == "active").label("total_assets"),
        count(Audit.id).label("total_audits"),
        count(
            Audit.id,
            Audit.status.in_([AuditStatus.SCHEDULED, AuditStatus.IN_PROGRESS]),
        ).label("active_audits"),
        count(Audit.id, Audit.status == AuditStatus.COMPLETED).label("completed_audits"),
        count(Vulnerability.id, Vulnerability.status.in_(open_statuses)).label("open_vulnerabilities"),
        count(
            Vulnerability.id,
            Vulnerability.severity == "critical",
            Vulnerability.status.in_(open_statuses),
        ).label("critical_vulnerabilities"),
    )
    row = (await session.execute(stmt)).one()
    return DashboardMetrics(**{key: value or 0 for key, value in row._mapping.items()})


class ActivitySink:
    """Records activity and fans out update notifications."""

    def __init__(self, gateway: PersistenceGateway, notifier: ConnectionManager):
        self.gateway = gateway
        self.notifier = notifier

    async def log_activity(
        self,
        actor: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Any,
        description: str,
        severity: Optional[str] = None,
    ) -> Optional[ActivityLog]:
        """
        Append one activity entry.

        Returns the stored entry, or None when the store failed and the entry
        went to the local fallback buffer instead. Never raises StorageError.
        """
        entry = ActivityLog.create(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            user_id=actor,
            severity=severity,
        )
        try:
            async with self.gateway.transaction("record activity") as session:
                session.add(entry)
        except StorageError as exc:
            logger.warning(
                "Activity store unavailable, keeping entry locally (%s %s:%s): %s",
                action, entity_type, entity_id, exc,
            )
            _fallback.append(entry)
            return None

        await self.broadcast("activity", {
            "type": "activity",
            "data": to_activity_response(entry).model_dump(mode="json", by_alias=True),
        })
        return entry

    async def broadcast(self, topic: str, event: dict) -> int:
        """Push event to live subscribers. Returns how many received it."""
        try:
            return await self.notifier.broadcast(topic, event)
        except Exception:
            logger.exception("Broadcast on topic %s failed", topic)
            return 0

    async def broadcast_audit_update(self, audit_id: int, action: str) -> int:
        return await self.broadcast("audits", {
            "type": "audit_update",
            "data": {"auditId": audit_id, "action": action},
        })

    async def broadcast_report_update(self, report_id: int, action: str) -> int:
        return await self.broadcast("reports", {
            "type": "report_update",
            "data": {"reportId": report_id, "action": action},
        })

    async def broadcast_metrics_update(self) -> int:
        """Recompute dashboard metrics and push them to metrics listeners."""
        if not self.notifier.has_subscribers("metrics"):
            return 0

        try:
            metrics = await self.dashboard_metrics()
        except StorageError as exc:
            logger.warning("Skipping metrics update: %s", exc)
            return 0

        return await self.broadcast("metrics", {
            "type": "metrics_update",
            "data": metrics.model_dump(by_alias=True),
        })

    async def dashboard_metrics(self) -> DashboardMetrics:
        async with self.gateway.transaction("compute dashboard metrics") as session:
            return await collect_dashboard_metrics(session)

    async def recent(self, limit: int = ACTIVITY_FEED_LIMIT) -> list[ActivityResponse]:
        """Newest-first activity feed."""
        async with self.gateway.transaction("fetch activity") as session:
            result = await session.execute(
                select(ActivityLog)
                .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
                .limit(limit)
            )
            entries = result.scalars().all()
        return [to_activity_response(e) for e in entries]
