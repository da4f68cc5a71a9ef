"""
Audit schemas.
"""

from typing import Optional, List, Union, Any
from datetime import date, datetime
from pydantic import Field

from app.models.audit import AuditStatus
from app.schemas.common import CamelModel


class AuditCreate(CamelModel):
    """
    Schema for creating a new audit.

    Field order matters: a body missing several required fields is
    reported by the first one in this order.
    """

    title: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=50)
    scope: Union[List[str], str]
    auditor_id: int
    auditee_id: int
    scheduled_date: date
    frequency: str = Field(min_length=1, max_length=50)

    documents: Optional[List[Any]] = None
    asset_ids: Optional[List[int]] = None


class AuditPatch(CamelModel):
    """
    Partial update for an audit.

    Each field is independently present or absent. A field counts as
    present when the client sent it with a non-null value; see
    ``present_fields``.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    scope: Optional[Union[List[str], str]] = None
    auditor_id: Optional[int] = None
    auditee_id: Optional[int] = None
    scheduled_date: Optional[date] = None
    completed_date: Optional[date] = None
    frequency: Optional[str] = Field(default=None, min_length=1, max_length=50)
    status: Optional[AuditStatus] = None
    documents: Optional[List[Any]] = None

    # Replaces the whole association set when present
    asset_ids: Optional[List[int]] = None

    def present_fields(self) -> set[str]:
        """Names of the fields the client actually supplied."""
        return {
            name for name in self.model_fields_set
            if getattr(self, name) is not None
        }


class AuditResponse(CamelModel):
    """Canonical audit record returned by every audit endpoint."""

    id: int
    title: str
    type: str
    scope: List[str] = Field(default_factory=list)
    asset_ids: List[int] = Field(default_factory=list)
    auditor_id: int
    auditee_id: int
    status: AuditStatus
    scheduled_date: date
    completed_date: Optional[date] = None
    frequency: str
    documents: List[Any] = Field(default_factory=list)

    # Display names joined from users/assets
    auditor_name: Optional[str] = None
    auditee_name: Optional[str] = None
    asset_names: List[str] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuditTransitionResponse(CamelModel):
    """Result of a lifecycle transition (start/complete)."""

    success: bool = True
    message: str
    audit: AuditResponse
