"""
AuditDesk Database Models

This module exports all SQLAlchemy models for the application.
"""

from app.models.user import User
from app.models.asset import Asset, Vulnerability
from app.models.audit import Audit, AuditStatus, audit_assets
from app.models.report import Report, ReportType, ReportStatus
from app.models.activity import ActivityLog

__all__ = [
    # External tables
    "User",
    "Asset",
    "Vulnerability",
    # Audit models
    "Audit",
    "AuditStatus",
    "audit_assets",
    # Report models
    "Report",
    "ReportType",
    "ReportStatus",
    # Activity log
    "ActivityLog",
]
