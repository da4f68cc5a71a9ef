"""
Report schemas.
"""

from typing import Optional, List, Any, Dict, Union
from datetime import datetime
from pydantic import ConfigDict, Field

from app.models.report import ReportType, ReportStatus
from app.schemas.common import CamelModel


class ReportCreate(CamelModel):
    """Schema for creating report metadata (no aggregation)."""

    title: str = Field(min_length=1, max_length=255)
    type: ReportType
    generated_by: int

    audit_id: Optional[int] = None
    status: ReportStatus = ReportStatus.DRAFT
    format: str = Field(default="pdf", max_length=20)


class ReportParams(CamelModel):
    """Optional knobs for report generation."""

    model_config = ConfigDict(extra="allow")

    audit_id: Optional[int] = None
    format: str = Field(default="pdf", max_length=20)
    generated_by: Optional[int] = None


class ReportGenerateRequest(CamelModel):
    """
    Generate a report from live data.

    ``type`` stays a plain string: unknown types produce an empty payload
    instead of a validation error.
    """

    type: Optional[str] = None
    params: ReportParams = Field(default_factory=ReportParams)


class ReportResponse(CamelModel):
    """Canonical report record."""

    id: int
    title: str
    type: str
    audit_id: Optional[int] = None
    generated_by: int
    generated_by_name: Optional[str] = None
    status: ReportStatus
    file_path: Optional[str] = None
    file_size: Optional[str] = None
    format: str
    generated_date: datetime
    audit_title: Optional[str] = None


class ReportGenerateResponse(CamelModel):
    success: bool = True
    report_id: int
    message: str = "Report generated successfully"
    download_url: str
    data: Union[Dict[str, Any], List[Any]] = Field(default_factory=dict)


class ReportDownloadResponse(CamelModel):
    success: bool = True
    message: str = "Report download initiated"
    file_name: Optional[str] = None
    file_size: Optional[str] = None
    format: str
