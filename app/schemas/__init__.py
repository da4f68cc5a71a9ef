"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Input validation (camelCase on the wire, snake_case in code)
- Output serialization
- OpenAPI documentation generation
"""

from app.schemas.audit import (
    AuditCreate,
    AuditPatch,
    AuditResponse,
    AuditTransitionResponse,
)
from app.schemas.report import (
    ReportCreate,
    ReportParams,
    ReportGenerateRequest,
    ReportResponse,
    ReportGenerateResponse,
    ReportDownloadResponse,
)
from app.schemas.activity import (
    ActivityResponse,
    SecurityAlert,
    DashboardMetrics,
)
from app.schemas.common import (
    CamelModel,
    SuccessResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    # Audit
    "AuditCreate",
    "AuditPatch",
    "AuditResponse",
    "AuditTransitionResponse",
    # Report
    "ReportCreate",
    "ReportParams",
    "ReportGenerateRequest",
    "ReportResponse",
    "ReportGenerateResponse",
    "ReportDownloadResponse",
    # Activity
    "ActivityResponse",
    "SecurityAlert",
    "DashboardMetrics",
    # Common
    "CamelModel",
    "SuccessResponse",
    "ErrorResponse",
    "HealthResponse",
]
