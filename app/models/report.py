"""
Report model.

Reports are either created as metadata-only drafts or produced by the
generate operation, which stores an aggregate snapshot as a final report.
Generated reports are not edited afterwards, only deleted.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional
from sqlalchemy import String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class ReportType(str, PyEnum):
    """Report kinds the generator knows how to aggregate."""
    AUDIT_SUMMARY = "audit_summary"
    VULNERABILITY_REPORT = "vulnerability_report"
    COMPLIANCE_REPORT = "compliance_report"
    EXECUTIVE_SUMMARY = "executive_summary"


class ReportStatus(str, PyEnum):
    DRAFT = "draft"
    FINAL = "final"


class Report(Base):
    """Report metadata; the rendered file lives in report storage."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free-form: generate() accepts types it cannot aggregate
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    audit_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("audits.id", ondelete="SET NULL"),
        nullable=True
    )
    generated_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, values_callable=lambda e: [m.value for m in e]),
        default=ReportStatus.DRAFT,
        nullable=False
    )

    # File descriptor
    file_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    file_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    format: Mapped[str] = mapped_column(String(20), default="pdf", nullable=False)

    generated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    # Relationships
    author: Mapped["User"] = relationship("User")
    audit: Mapped[Optional["Audit"]] = relationship("Audit")

    def __repr__(self) -> str:
        return f"<Report {self.id} {self.type}>"


# Import for type hints
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from app.models.user import User
    from app.models.audit import Audit
