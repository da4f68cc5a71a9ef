"""
Report resource manager.

Besides plain CRUD, ``generate`` aggregates live statistics from the audit
and vulnerability tables into a canned payload and records a final report.
Rendering and storing the actual file is delegated to a ReportStorage; the
default implementation only produces a placeholder size.
"""

import logging
import random
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select, delete, func, case
from sqlalchemy.orm import selectinload

from app.core.config import DEFAULT_REPORT_USER_ID, REPORTS_DIR
from app.core.database import PersistenceGateway
from app.core.errors import NotFoundError, ValidationError
from app.models.asset import Vulnerability, OPEN_VULNERABILITY_STATUSES, RESOLVED_VULNERABILITY_STATUS
from app.models.audit import Audit, AuditStatus
from app.models.report import Report, ReportType, ReportStatus
from app.schemas.report import (
    ReportCreate,
    ReportDownloadResponse,
    ReportGenerateResponse,
    ReportParams,
    ReportResponse,
)
from app.services.activity import ActivitySink, collect_dashboard_metrics

logger = logging.getLogger(__name__)

REPORT_TITLES = {
    ReportType.AUDIT_SUMMARY.value: "Audit Summary Report",
    ReportType.VULNERABILITY_REPORT.value: "Vulnerability Assessment Report",
    ReportType.COMPLIANCE_REPORT.value: "Compliance Status Report",
    ReportType.EXECUTIVE_SUMMARY.value: "Executive Security Summary",
}
DEFAULT_REPORT_TITLE = "Security Report"

# Relative directory recorded in reports.file_path
REPORTS_SUBDIR = "reports"


class ReportStorage:
    """
    File side of reports.

    Rendering is not implemented here: ``store`` reports a placeholder size
    and writes nothing. ``remove`` deletes the file under ``root`` if one
    was ever placed there by a real renderer.
    """

    def __init__(self, root: Path = REPORTS_DIR):
        self.root = Path(root)

    def store(self, file_path: str, payload: Union[Dict[str, Any], List[Any]]) -> str:
        """Return the size label of the rendered file."""
        return f"{random.randint(1, 5)}.{random.randint(0, 9)} MB"

    def remove(self, file_path: Optional[str]) -> bool:
        """Delete the stored file. Returns True if something was removed."""
        if not file_path:
            return False
        target = (self.root / file_path).resolve()
        if self.root.resolve() not in target.parents:
            logger.warning("Refusing to remove report file outside storage root: %s", file_path)
            return False
        if not target.is_file():
            return False
        target.unlink()
        return True


report_storage = ReportStorage()


def get_report_storage() -> ReportStorage:
    """Dependency for getting the report file storage."""
    return report_storage


def compliance_score(total: int, resolved: int) -> int:
    """Share of resolved vulnerabilities as a 0-100 integer; 100 when none exist."""
    if total <= 0:
        return 100
    return round(resolved / total * 100)


def report_title(report_type: str, today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    base = REPORT_TITLES.get(report_type, DEFAULT_REPORT_TITLE)
    return f"{base} - {today.strftime('%Y-%m-%d')}"


def report_file_name(report_type: str, fmt: str = "pdf", now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    prefix = report_type.replace("_", "-")
    return f"{prefix}-{now.strftime('%Y-%m-%d-%H-%M-%S')}.{fmt}"


def to_report_response(report: Report) -> ReportResponse:
    return ReportResponse(
        id=report.id,
        title=report.title,
        type=report.type,
        audit_id=report.audit_id,
        generated_by=report.generated_by,
        generated_by_name=report.author.name if report.author else None,
        status=report.status,
        file_path=report.file_path,
        file_size=report.file_size,
        format=report.format,
        generated_date=report.generated_date,
        audit_title=report.audit.title if report.audit else None,
    )


def _report_query():
    return select(Report).options(selectinload(Report.author), selectinload(Report.audit))


# =============================================================================
# Aggregations
# =============================================================================

async def _audit_summary(session) -> Dict[str, Any]:
    row = (await session.execute(
        select(
            func.count(Audit.id).label("total_audits"),
            func.sum(case((Audit.status == AuditStatus.COMPLETED, 1), else_=0)).label("completed_audits"),
            func.sum(case((Audit.status == AuditStatus.IN_PROGRESS, 1), else_=0)).label("active_audits"),
        )
    )).one()
    return {
        "totalAudits": row.total_audits or 0,
        "completedAudits": row.completed_audits or 0,
        "activeAudits": row.active_audits or 0,
    }


async def _vulnerability_report(session) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Vulnerability.severity, func.count(Vulnerability.id))
        .where(Vulnerability.status.in_(OPEN_VULNERABILITY_STATUSES))
        .group_by(Vulnerability.severity)
        .order_by(Vulnerability.severity)
    )
    return [{"severity": severity, "count": count} for severity, count in result.all()]


async def _compliance_report(session) -> Dict[str, Any]:
    total = await session.scalar(select(func.count(Vulnerability.id))) or 0
    resolved = await session.scalar(
        select(func.count(Vulnerability.id))
        .where(Vulnerability.status == RESOLVED_VULNERABILITY_STATUS)
    ) or 0
    return {"score": compliance_score(total, resolved), "total": total, "resolved": resolved}


async def _executive_summary(session) -> Dict[str, Any]:
    metrics = await collect_dashboard_metrics(session)
    return metrics.model_dump(
        by_alias=True,
        include={"total_assets", "active_audits", "open_vulnerabilities", "critical_vulnerabilities"},
    )


AGGREGATORS = {
    ReportType.AUDIT_SUMMARY.value: _audit_summary,
    ReportType.VULNERABILITY_REPORT.value: _vulnerability_report,
    ReportType.COMPLIANCE_REPORT.value: _compliance_report,
    ReportType.EXECUTIVE_SUMMARY.value: _executive_summary,
}


class ReportManager:
    """CRUD, generation, and download metadata for reports."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        activity: ActivitySink,
        storage: Optional[ReportStorage] = None,
    ):
        self.gateway = gateway
        self.activity = activity
        self.storage = storage or report_storage

    async def list(self) -> List[ReportResponse]:
        async with self.gateway.transaction("fetch reports") as session:
            result = await session.execute(
                _report_query().order_by(Report.generated_date.desc(), Report.id.desc())
            )
            return [to_report_response(r) for r in result.scalars().all()]

    async def get(self, report_id: int) -> ReportResponse:
        async with self.gateway.transaction("fetch report") as session:
            result = await session.execute(_report_query().where(Report.id == report_id))
            report = result.scalar_one_or_none()
            if report is None:
                raise NotFoundError("Report not found")
            return to_report_response(report)

    async def create(self, data: ReportCreate, actor: Optional[int] = None) -> ReportResponse:
        """Record report metadata only; nothing is aggregated or rendered."""
        async with self.gateway.transaction("create report") as session:
            report = Report(
                title=data.title,
                type=data.type.value,
                audit_id=data.audit_id,
                generated_by=data.generated_by,
                status=data.status,
                format=data.format,
            )
            session.add(report)
            await session.flush()
            report_id = report.id

        await self.activity.log_activity(actor, "create", "report", report_id, f"Created new report: {data.title}")
        await self.activity.broadcast_report_update(report_id, "created")

        return await self.get(report_id)

    async def aggregate(self, report_type: str) -> Union[Dict[str, Any], List[Any]]:
        """Aggregate payload for report_type; unknown types yield an empty payload."""
        aggregator = AGGREGATORS.get(report_type)
        if aggregator is None:
            logger.info("No aggregation defined for report type %r", report_type)
            return {}
        async with self.gateway.transaction(f"aggregate {report_type}") as session:
            return await aggregator(session)

    async def generate(
        self,
        report_type: Optional[str],
        params: Optional[ReportParams] = None,
        actor: Optional[int] = None,
    ) -> ReportGenerateResponse:
        if not report_type:
            raise ValidationError("Report type is required")
        params = params or ReportParams()

        data = await self.aggregate(report_type)

        now = datetime.now(timezone.utc)
        title = report_title(report_type, now)
        file_path = str(PurePosixPath(REPORTS_SUBDIR) / report_file_name(report_type, params.format, now))
        file_size = self.storage.store(file_path, data)

        async with self.gateway.transaction("generate report") as session:
            report = Report(
                title=title,
                type=report_type,
                audit_id=params.audit_id,
                generated_by=params.generated_by or actor or DEFAULT_REPORT_USER_ID,
                status=ReportStatus.FINAL,
                file_path=file_path,
                file_size=file_size,
                format=params.format,
                generated_date=now,
            )
            session.add(report)
            await session.flush()
            report_id = report.id

        logger.info("Generated %s report %s", report_type, report_id)
        await self.activity.log_activity(actor, "generate", "report", report_id, f"Generated report: {title}")
        await self.activity.broadcast_report_update(report_id, "generated")

        return ReportGenerateResponse(
            report_id=report_id,
            download_url=f"/api/reports/download/{report_id}",
            data=data,
        )

    async def download(self, report_id: int) -> ReportDownloadResponse:
        """File metadata for a report. Byte transfer is handled by file storage."""
        async with self.gateway.transaction("download report") as session:
            report = await session.get(Report, report_id)
            if report is None:
                raise NotFoundError("Report not found")

        return ReportDownloadResponse(
            file_name=PurePosixPath(report.file_path).name if report.file_path else None,
            file_size=report.file_size,
            format=report.format,
        )

    async def delete(self, report_id: int, actor: Optional[int] = None) -> str:
        """Delete report metadata, then its stored file. Returns the title."""
        async with self.gateway.transaction("delete report") as session:
            report = await session.get(Report, report_id)
            if report is None:
                raise NotFoundError("Report not found")
            title, file_path = report.title, report.file_path
            await session.execute(delete(Report).where(Report.id == report_id))

        try:
            self.storage.remove(file_path)
        except OSError as exc:
            logger.warning("Could not remove report file %s: %s", file_path, exc)

        await self.activity.log_activity(actor, "delete", "report", report_id, f"Deleted report: {title}")
        await self.activity.broadcast_report_update(report_id, "deleted")
        return title
