"""
Activity log model.

Every mutation of an audit or report appends one entry. The log feeds:
- The audit trail (who did what, when)
- The live activity feed on the dashboard
- Derived security alerts
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class ActivityLog(Base):
    """
    Immutable activity log entry.

    Records are append-only; nothing in this service updates or deletes them.
    Timestamps are UTC.
    """

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    # When
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    # Who (null for system actions)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # What
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # create, update, start, ...
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # audit, report
    entity_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} {self.entity_type}:{self.entity_id} at {self.timestamp}>"

    @classmethod
    def create(
        cls,
        action: str,
        entity_type: str,
        entity_id=None,
        description: str = "",
        user_id: Optional[int] = None,
        severity: Optional[str] = None,
    ) -> "ActivityLog":
        """Factory method to create activity log entries."""
        return cls(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            description=description,
            user_id=user_id,
            severity=severity,
            timestamp=datetime.now(timezone.utc),
        )
