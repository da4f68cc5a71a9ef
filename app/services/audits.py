"""
Audit resource manager.

CRUD plus the one-way lifecycle:

    scheduled --start()--> in_progress --complete()--> completed

Every multi-statement write (audit row + asset associations) runs inside a
single gateway transaction. Activity logging and broadcasts happen after the
commit and never turn a successful write into a failure.
"""

import json
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update, delete, insert
from sqlalchemy.orm import selectinload

from app.core.database import PersistenceGateway
from app.core.errors import NotFoundError, ConflictError, ValidationError
from app.models.audit import Audit, AuditStatus, audit_assets, flatten_scope
from app.schemas.audit import AuditCreate, AuditPatch, AuditResponse
from app.services.activity import ActivitySink

logger = logging.getLogger(__name__)

# Plain column fields a patch may touch, written as given
PATCH_COLUMNS = (
    "title",
    "type",
    "auditor_id",
    "auditee_id",
    "scheduled_date",
    "completed_date",
    "frequency",
    "status",
)

STATUS_ORDER = {
    AuditStatus.SCHEDULED: 0,
    AuditStatus.IN_PROGRESS: 1,
    AuditStatus.COMPLETED: 2,
}


def to_audit_response(audit: Audit) -> AuditResponse:
    return AuditResponse(
        id=audit.id,
        title=audit.title,
        type=audit.type,
        scope=audit.get_scope(),
        asset_ids=[a.id for a in audit.assets],
        auditor_id=audit.auditor_id,
        auditee_id=audit.auditee_id,
        status=audit.status,
        scheduled_date=audit.scheduled_date,
        completed_date=audit.completed_date,
        frequency=audit.frequency,
        documents=audit.get_documents(),
        auditor_name=audit.auditor.name if audit.auditor else None,
        auditee_name=audit.auditee.name if audit.auditee else None,
        asset_names=[a.name for a in audit.assets],
        created_at=audit.created_at,
        updated_at=audit.updated_at,
    )


def build_patch_values(patch: AuditPatch, current: Audit) -> Dict[str, Any]:
    """
    Column values for the fields present in patch.

    Status and completed_date are kept consistent: completed_date is set
    exactly when the resulting status is completed.
    """
    present = patch.present_fields()
    values: Dict[str, Any] = {
        name: getattr(patch, name) for name in PATCH_COLUMNS if name in present
    }

    if "scope" in present:
        values["scope"] = flatten_scope(patch.scope)
    if "documents" in present:
        values["documents"] = json.dumps(patch.documents)

    if "status" in values:
        new_status = values["status"]
        if STATUS_ORDER[new_status] < STATUS_ORDER[current.status]:
            raise ConflictError(
                f"Audit cannot move from {current.status.value} back to {new_status.value}"
            )

    if "status" in values or "completed_date" in values:
        status = values.get("status", current.status)
        if status == AuditStatus.COMPLETED:
            values["completed_date"] = (
                values.get("completed_date") or current.completed_date or date.today()
            )
        elif "completed_date" in values:
            raise ValidationError("CompletedDate can only be set on a completed audit")
        else:
            values["completed_date"] = None

    return values


async def _link_assets(session, audit_id: int, asset_ids: Iterable[int]) -> None:
    rows = [{"audit_id": audit_id, "asset_id": asset_id} for asset_id in dict.fromkeys(asset_ids)]
    if rows:
        await session.execute(insert(audit_assets), rows)


def _audit_query():
    return select(Audit).options(
        selectinload(Audit.auditor),
        selectinload(Audit.auditee),
        selectinload(Audit.assets),
    )


class AuditManager:
    """CRUD and lifecycle transitions for audits."""

    def __init__(self, gateway: PersistenceGateway, activity: ActivitySink):
        self.gateway = gateway
        self.activity = activity

    async def list(self) -> List[AuditResponse]:
        """All audits, newest first."""
        async with self.gateway.transaction("fetch audits") as session:
            result = await session.execute(
                _audit_query().order_by(Audit.created_at.desc(), Audit.id.desc())
            )
            return [to_audit_response(a) for a in result.scalars().all()]

    async def get(self, audit_id: int) -> AuditResponse:
        async with self.gateway.transaction("fetch audit") as session:
            result = await session.execute(_audit_query().where(Audit.id == audit_id))
            audit = result.scalar_one_or_none()
            if audit is None:
                raise NotFoundError("Audit not found")
            return to_audit_response(audit)

    async def create(self, data: AuditCreate, actor: Optional[int] = None) -> AuditResponse:
        async with self.gateway.transaction("create audit") as session:
            audit = Audit(
                title=data.title,
                type=data.type,
                scope=flatten_scope(data.scope),
                auditor_id=data.auditor_id,
                auditee_id=data.auditee_id,
                status=AuditStatus.SCHEDULED,
                scheduled_date=data.scheduled_date,
                frequency=data.frequency,
                documents=json.dumps(data.documents) if data.documents is not None else None,
            )
            session.add(audit)
            await session.flush()

            if data.asset_ids:
                await _link_assets(session, audit.id, data.asset_ids)
            audit_id = audit.id

        logger.info("Audit %s created", audit_id)
        await self.activity.log_activity(actor, "create", "audit", audit_id, f"Created new audit: {data.title}")
        await self.activity.broadcast_audit_update(audit_id, "created")
        await self.activity.broadcast_metrics_update()

        return await self.get(audit_id)

    async def update(self, audit_id: int, patch: AuditPatch, actor: Optional[int] = None) -> AuditResponse:
        """
        Apply a partial update.

        Only fields present in the patch are written. When asset_ids is
        present the association set is replaced wholesale in the same
        transaction. An empty patch writes nothing.
        """
        async with self.gateway.transaction("update audit") as session:
            current = await session.get(Audit, audit_id)
            if current is None:
                raise NotFoundError("Audit not found")

            values = build_patch_values(patch, current)
            if values:
                await session.execute(
                    update(Audit)
                    .where(Audit.id == audit_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )

            if "asset_ids" in patch.present_fields():
                await session.execute(
                    delete(audit_assets).where(audit_assets.c.audit_id == audit_id)
                )
                await _link_assets(session, audit_id, patch.asset_ids)

        await self.activity.log_activity(actor, "update", "audit", audit_id, "Updated audit")
        await self.activity.broadcast_audit_update(audit_id, "updated")
        await self.activity.broadcast_metrics_update()

        return await self.get(audit_id)

    async def delete(self, audit_id: int, actor: Optional[int] = None) -> str:
        """Delete an audit and its asset links. Returns the deleted title."""
        async with self.gateway.transaction("delete audit") as session:
            title = await session.scalar(select(Audit.title).where(Audit.id == audit_id))
            if title is None:
                raise NotFoundError("Audit not found")

            await session.execute(
                delete(audit_assets).where(audit_assets.c.audit_id == audit_id)
            )
            await session.execute(
                delete(Audit)
                .where(Audit.id == audit_id)
                .execution_options(synchronize_session=False)
            )

        logger.info("Audit %s deleted", audit_id)
        await self.activity.log_activity(actor, "delete", "audit", audit_id, f"Deleted audit: {title}")
        await self.activity.broadcast_audit_update(audit_id, "deleted")
        await self.activity.broadcast_metrics_update()
        return title

    async def start(self, audit_id: int, actor: Optional[int] = None) -> AuditResponse:
        """Move a scheduled audit to in_progress."""
        await self._transition(
            audit_id,
            expected=AuditStatus.SCHEDULED,
            values={"status": AuditStatus.IN_PROGRESS},
            action="start audit",
            label="started",
        )

        await self.activity.log_activity(actor, "start", "audit", audit_id, "Started audit")
        await self.activity.broadcast_audit_update(audit_id, "started")

        return await self.get(audit_id)

    async def complete(self, audit_id: int, actor: Optional[int] = None) -> AuditResponse:
        """Move an in-progress audit to completed, stamping today's date."""
        await self._transition(
            audit_id,
            expected=AuditStatus.IN_PROGRESS,
            values={"status": AuditStatus.COMPLETED, "completed_date": date.today()},
            action="complete audit",
            label="completed",
        )

        await self.activity.log_activity(actor, "complete", "audit", audit_id, "Completed audit")
        await self.activity.broadcast_audit_update(audit_id, "completed")
        await self.activity.broadcast_metrics_update()

        return await self.get(audit_id)

    async def _transition(
        self,
        audit_id: int,
        expected: AuditStatus,
        values: Dict[str, Any],
        action: str,
        label: str,
    ) -> None:
        """
        Conditional status update.

        The WHERE clause carries the precondition so two concurrent
        transitions cannot both succeed. Raises NotFoundError for an unknown
        id and ConflictError when the audit is in the wrong state.
        """
        async with self.gateway.transaction(action) as session:
            result = await session.execute(
                update(Audit)
                .where(Audit.id == audit_id, Audit.status == expected)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                return

            status = await session.scalar(select(Audit.status).where(Audit.id == audit_id))
            if status is None:
                raise NotFoundError("Audit not found")
            raise ConflictError(f"Audit cannot be {label} while {status.value}")
