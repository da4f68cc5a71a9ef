"""
FastAPI dependencies wiring the resource managers.

The persistence gateway, realtime hub, and report storage are process-wide
singletons; managers are cheap and built per request around them. Tests
swap any of them through ``app.dependency_overrides``.
"""

from fastapi import Depends

from app.core.database import PersistenceGateway, get_gateway
from app.services.activity import ActivitySink
from app.services.audits import AuditManager
from app.services.realtime import ConnectionManager, get_notifier
from app.services.reports import ReportManager, ReportStorage, get_report_storage


def get_activity_sink(
    gateway: PersistenceGateway = Depends(get_gateway),
    notifier: ConnectionManager = Depends(get_notifier),
) -> ActivitySink:
    return ActivitySink(gateway, notifier)


def get_audit_manager(
    gateway: PersistenceGateway = Depends(get_gateway),
    activity: ActivitySink = Depends(get_activity_sink),
) -> AuditManager:
    return AuditManager(gateway, activity)


def get_report_manager(
    gateway: PersistenceGateway = Depends(get_gateway),
    activity: ActivitySink = Depends(get_activity_sink),
    storage: ReportStorage = Depends(get_report_storage),
) -> ReportManager:
    return ReportManager(gateway, activity, storage)
