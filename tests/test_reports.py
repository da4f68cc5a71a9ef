from datetime import datetime, timezone

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.models.report import ReportStatus, ReportType
from app.schemas.audit import AuditCreate
from app.schemas.report import ReportCreate, ReportParams
from app.services.reports import compliance_score, report_file_name, report_title

from conftest import RecordingSubscriber


def test_compliance_score():
    assert compliance_score(10, 7) == 70
    assert compliance_score(0, 0) == 100
    assert compliance_score(3, 1) == 33


def test_report_naming():
    now = datetime(2025, 3, 9, 14, 5, 7, tzinfo=timezone.utc)
    assert report_title("audit_summary", now) == "Audit Summary Report - 2025-03-09"
    assert report_title("threat_model", now) == "Security Report - 2025-03-09"
    assert report_file_name("vulnerability_report", "pdf", now) == "vulnerability-report-2025-03-09-14-05-07.pdf"


@pytest.mark.asyncio
async def test_compliance_report_score(reports, add_vulnerabilities):
    await add_vulnerabilities([("high", "resolved")] * 7 + [("medium", "open")] * 3)

    result = await reports.generate("compliance_report")

    assert result.data == {"score": 70, "total": 10, "resolved": 7}


@pytest.mark.asyncio
async def test_compliance_report_without_vulnerabilities(reports):
    result = await reports.generate("compliance_report")

    assert result.data["score"] == 100


@pytest.mark.asyncio
async def test_vulnerability_report_counts_open_only(reports, add_vulnerabilities):
    await add_vulnerabilities([
        ("critical", "open"),
        ("critical", "in_progress"),
        ("high", "open"),
        ("high", "resolved"),
    ])

    result = await reports.generate("vulnerability_report")

    assert result.data == [
        {"severity": "critical", "count": 2},
        {"severity": "high", "count": 1},
    ]


@pytest.mark.asyncio
async def test_audit_summary(reports, audits, audit_payload):
    first = await audits.create(AuditCreate.model_validate(audit_payload))
    second = await audits.create(AuditCreate.model_validate(audit_payload))
    await audits.create(AuditCreate.model_validate(audit_payload))
    await audits.start(first.id)
    await audits.start(second.id)
    await audits.complete(second.id)

    result = await reports.generate("audit_summary")

    assert result.data == {"totalAudits": 3, "completedAudits": 1, "activeAudits": 1}


@pytest.mark.asyncio
async def test_executive_summary(reports, add_vulnerabilities):
    await add_vulnerabilities([("critical", "open"), ("low", "open"), ("critical", "resolved")])

    result = await reports.generate("executive_summary")

    assert result.data == {
        "totalAssets": 2,
        "activeAudits": 0,
        "openVulnerabilities": 2,
        "criticalVulnerabilities": 1,
    }


@pytest.mark.asyncio
async def test_generate_records_final_report(reports):
    result = await reports.generate("audit_summary", ReportParams(format="xlsx"))

    assert result.success
    assert result.download_url == f"/api/reports/download/{result.report_id}"

    report = await reports.get(result.report_id)
    assert report.status == ReportStatus.FINAL
    assert report.type == "audit_summary"
    assert report.format == "xlsx"
    assert report.generated_by == 1
    assert report.generated_by_name == "Alice Auditor"
    assert report.title.startswith("Audit Summary Report - ")
    assert report.file_path.startswith("reports/audit-summary-")
    assert report.file_path.endswith(".xlsx")
    assert report.file_size.endswith(" MB")


@pytest.mark.asyncio
async def test_generate_unknown_type_has_empty_payload(reports):
    result = await reports.generate("threat_model")

    assert result.data == {}
    assert (await reports.get(result.report_id)).title.startswith("Security Report - ")


@pytest.mark.asyncio
async def test_generate_requires_type(reports):
    with pytest.raises(ValidationError, match="Report type is required"):
        await reports.generate(None)
    with pytest.raises(ValidationError):
        await reports.generate("")


@pytest.mark.asyncio
async def test_create_defaults_to_draft(reports):
    report = await reports.create(
        ReportCreate(title="Q1 findings", type=ReportType.VULNERABILITY_REPORT, generated_by=2)
    )

    assert report.status == ReportStatus.DRAFT
    assert report.format == "pdf"
    assert report.file_path is None
    assert report.generated_by_name == "Bob Owner"


@pytest.mark.asyncio
async def test_create_linked_to_audit(reports, audits, audit_payload):
    audit = await audits.create(AuditCreate.model_validate(audit_payload))

    report = await reports.create(
        ReportCreate(title="Pentest report", type=ReportType.AUDIT_SUMMARY, generated_by=1, audit_id=audit.id)
    )

    assert report.audit_title == "Q1 Pentest"


@pytest.mark.asyncio
async def test_list_reports(reports):
    assert await reports.list() == []

    first = await reports.generate("audit_summary")
    second = await reports.generate("compliance_report")

    assert [r.id for r in await reports.list()] == [second.report_id, first.report_id]


@pytest.mark.asyncio
async def test_download_metadata(reports):
    generated = await reports.generate("executive_summary")

    download = await reports.download(generated.report_id)

    assert download.success
    assert download.file_name.startswith("executive-summary-")
    assert download.file_name.endswith(".pdf")
    assert download.format == "pdf"

    with pytest.raises(NotFoundError):
        await reports.download(999)


@pytest.mark.asyncio
async def test_delete_removes_stored_file(reports, storage):
    generated = await reports.generate("audit_summary")
    report = await reports.get(generated.report_id)
    stored = storage.root / report.file_path
    stored.parent.mkdir(parents=True)
    stored.write_bytes(b"%PDF-1.4")

    title = await reports.delete(report.id)

    assert title == report.title
    assert not stored.exists()
    with pytest.raises(NotFoundError):
        await reports.get(report.id)


@pytest.mark.asyncio
async def test_delete_missing_report(reports):
    with pytest.raises(NotFoundError, match="Report not found"):
        await reports.delete(77)


def test_storage_refuses_paths_outside_root(storage, tmp_path):
    outside = tmp_path / "keep.txt"
    outside.write_text("data")

    assert storage.remove("../keep.txt") is False
    assert outside.exists()
    assert storage.remove(None) is False


@pytest.mark.asyncio
async def test_generate_broadcasts_report_update(reports, notifier):
    listener = RecordingSubscriber()
    await notifier.subscribe(listener, ["reports"])

    result = await reports.generate("audit_summary")

    assert listener.of_type("report_update")[0]["data"] == {
        "reportId": result.report_id,
        "action": "generated",
    }
