"""
Audit management endpoints.

CRUD operations for audits with lifecycle transitions
(scheduled -> in_progress -> completed).
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_audit_manager
from app.schemas.audit import (
    AuditCreate,
    AuditPatch,
    AuditResponse,
    AuditTransitionResponse,
)
from app.schemas.common import SuccessResponse
from app.services.audits import AuditManager

router = APIRouter()


@router.get("", response_model=List[AuditResponse])
async def list_audits(
    manager: AuditManager = Depends(get_audit_manager),
):
    """List all audits with auditor/auditee names and covered assets."""
    return await manager.list()


@router.post("", response_model=AuditResponse, status_code=status.HTTP_201_CREATED)
async def create_audit(
    audit_data: AuditCreate,
    manager: AuditManager = Depends(get_audit_manager),
):
    """
    Schedule a new audit.

    The audit row and its asset links are written in one transaction.
    """
    return await manager.create(audit_data)


@router.get("/{audit_id}", response_model=AuditResponse)
async def get_audit(
    audit_id: int,
    manager: AuditManager = Depends(get_audit_manager),
):
    """Get audit details."""
    return await manager.get(audit_id)


@router.put("/{audit_id}", response_model=AuditResponse)
async def update_audit(
    audit_id: int,
    audit_data: AuditPatch,
    manager: AuditManager = Depends(get_audit_manager),
):
    """
    Partially update an audit.

    Only the fields present in the body are changed. Sending ``assetIds``
    replaces the whole asset set.
    """
    return await manager.update(audit_id, audit_data)


@router.delete("/{audit_id}", response_model=SuccessResponse)
async def delete_audit(
    audit_id: int,
    manager: AuditManager = Depends(get_audit_manager),
):
    """Delete an audit and its asset links."""
    await manager.delete(audit_id)
    return SuccessResponse(message="Audit deleted successfully")


@router.post("/{audit_id}/start", response_model=AuditTransitionResponse)
async def start_audit(
    audit_id: int,
    manager: AuditManager = Depends(get_audit_manager),
):
    """Start a scheduled audit."""
    audit = await manager.start(audit_id)
    return AuditTransitionResponse(message="Audit started successfully", audit=audit)


@router.post("/{audit_id}/complete", response_model=AuditTransitionResponse)
async def complete_audit(
    audit_id: int,
    manager: AuditManager = Depends(get_audit_manager),
):
    """Complete an in-progress audit."""
    audit = await manager.complete(audit_id)
    return AuditTransitionResponse(message="Audit completed successfully", audit=audit)
