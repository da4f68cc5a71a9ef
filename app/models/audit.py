"""
Audit engagement model.

An audit is a scheduled assessment against one or more assets. It moves
through a one-way lifecycle:

    scheduled -> in_progress -> completed

completed_date is set exactly when the status is completed.
"""

import json
from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from typing import Optional, List
from sqlalchemy import (
    String, Date, DateTime, ForeignKey, Enum, Text, Table, Column, Integer
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


# Scope is stored flattened. Values containing the delimiter do not
# round-trip.
SCOPE_DELIMITER = ","


class AuditStatus(str, PyEnum):
    """Lifecycle status for audits."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Association table for audit-asset coverage (many-to-many)
audit_assets = Table(
    "audit_assets",
    Base.metadata,
    Column("audit_id", Integer, ForeignKey("audits.id", ondelete="CASCADE"), primary_key=True),
    Column("asset_id", Integer, ForeignKey("assets.id", ondelete="CASCADE"), primary_key=True),
)


def flatten_scope(scope) -> str:
    """Join a scope sequence for storage. Plain strings are stored as given."""
    if isinstance(scope, str):
        return scope
    return SCOPE_DELIMITER.join(scope)


def split_scope(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return raw.split(SCOPE_DELIMITER)


class Audit(Base):
    """Security audit engagement."""

    __tablename__ = "audits"

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)  # internal, external, compliance, ...
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Who
    auditor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    auditee_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Lifecycle
    status: Mapped[AuditStatus] = mapped_column(
        Enum(AuditStatus, values_callable=lambda e: [m.value for m in e]),
        default=AuditStatus.SCHEDULED,
        nullable=False,
        index=True
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    completed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    frequency: Mapped[str] = mapped_column(String(50), nullable=False)  # once, monthly, quarterly, ...

    # JSON array of opaque document references
    documents: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    auditor: Mapped["User"] = relationship("User", foreign_keys=[auditor_id])
    auditee: Mapped["User"] = relationship("User", foreign_keys=[auditee_id])
    assets: Mapped[List["Asset"]] = relationship(
        "Asset",
        secondary=audit_assets,
        order_by="Asset.id",
    )

    def __repr__(self) -> str:
        return f"<Audit {self.id} {self.status.value}>"

    def get_scope(self) -> list[str]:
        return split_scope(self.scope)

    def get_documents(self) -> list:
        """Parse documents from JSON."""
        if not self.documents:
            return []
        try:
            return json.loads(self.documents)
        except json.JSONDecodeError:
            return []


# Import for type hints
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from app.models.user import User
    from app.models.asset import Asset
