"""
Report endpoints.

Reports are created as metadata-only drafts or generated from live data.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_report_manager
from app.schemas.common import SuccessResponse
from app.schemas.report import (
    ReportCreate,
    ReportDownloadResponse,
    ReportGenerateRequest,
    ReportGenerateResponse,
    ReportResponse,
)
from app.services.reports import ReportManager

router = APIRouter()


@router.get("", response_model=List[ReportResponse])
async def list_reports(
    manager: ReportManager = Depends(get_report_manager),
):
    """List all reports, newest first."""
    return await manager.list()


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    report_data: ReportCreate,
    manager: ReportManager = Depends(get_report_manager),
):
    """Record report metadata (status defaults to draft, format to pdf)."""
    return await manager.create(report_data)


@router.post("/generate", response_model=ReportGenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_report(
    request_data: ReportGenerateRequest,
    manager: ReportManager = Depends(get_report_manager),
):
    """
    Generate a report from current audit and vulnerability data.

    Supported types: audit_summary, vulnerability_report,
    compliance_report, executive_summary. Other types are recorded with an
    empty payload.
    """
    return await manager.generate(request_data.type, request_data.params)


@router.get("/download/{report_id}", response_model=ReportDownloadResponse)
async def download_report(
    report_id: int,
    manager: ReportManager = Depends(get_report_manager),
):
    """Return file metadata for a report."""
    return await manager.download(report_id)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    manager: ReportManager = Depends(get_report_manager),
):
    """Get report details."""
    return await manager.get(report_id)


@router.delete("/{report_id}", response_model=SuccessResponse)
async def delete_report(
    report_id: int,
    manager: ReportManager = Depends(get_report_manager),
):
    """Delete a report and its stored file."""
    await manager.delete(report_id)
    return SuccessResponse(message="Report deleted successfully")
