"""
Asset and Vulnerability models.

Both tables belong to the inventory/vulnerability tracker. Audits link to
assets, and report generation aggregates over both.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


# Status values written by the vulnerability tracker
OPEN_VULNERABILITY_STATUSES = ("open", "in_progress")
RESOLVED_VULNERABILITY_STATUS = "resolved"


class Asset(Base):
    """Inventoried system or application subject to audits."""

    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="active", index=True)

    def __repr__(self) -> str:
        return f"<Asset {self.name}>"


class Vulnerability(Base):
    """Tracked security weakness."""

    __tablename__ = "vulnerabilities"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # critical, high, medium, low
    status: Mapped[str] = mapped_column(String(32), default="open", index=True)
    asset_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("assets.id", ondelete="SET NULL"),
        nullable=True
    )
    discovered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Vulnerability {self.severity}:{self.title}>"
