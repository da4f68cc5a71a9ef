import pytest

from app.schemas.audit import AuditCreate
from app.services.activity import ActivitySink
from app.services.realtime import ConnectionManager

from conftest import BrokenSubscriber, FlakyGateway, RecordingSubscriber


@pytest.mark.asyncio
async def test_broadcast_without_subscribers_is_a_noop():
    hub = ConnectionManager()

    assert await hub.broadcast("audits", {"type": "audit_update", "data": {}}) == 0


@pytest.mark.asyncio
async def test_broadcast_reaches_topic_and_all_listeners():
    hub = ConnectionManager()
    audits_only = RecordingSubscriber()
    everything = RecordingSubscriber()
    reports_only = RecordingSubscriber()
    await hub.connect(audits_only, ["audits"])
    await hub.connect(everything, ["all"])
    await hub.connect(reports_only, ["reports"])

    delivered = await hub.broadcast("audits", {"type": "audit_update", "data": {"auditId": 1}})

    assert delivered == 2
    assert reports_only.messages == []
    message = audits_only.messages[0]
    assert message["topic"] == "audits"
    assert "timestamp" in message


@pytest.mark.asyncio
async def test_topic_subscriber_only_receives_its_topic():
    hub = ConnectionManager()
    listener = RecordingSubscriber()
    await hub.connect(listener, ["audits"])

    await hub.broadcast("reports", {"type": "report_update"})
    await hub.broadcast("activity", {"type": "activity"})
    await hub.broadcast("audits", {"type": "audit_update"})

    assert [m["type"] for m in listener.messages] == ["audit_update"]
    assert not hub.has_subscribers("metrics")


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery():
    hub = ConnectionManager()
    listener = RecordingSubscriber()
    await hub.connect(listener, ["audits", "reports"])
    await hub.unsubscribe(listener, ["audits"])

    assert await hub.broadcast("audits", {"type": "audit_update"}) == 0
    assert await hub.broadcast("reports", {"type": "report_update"}) == 1
    assert [m["type"] for m in listener.messages] == ["report_update"]


@pytest.mark.asyncio
async def test_connect_without_known_topics_listens_on_all():
    hub = ConnectionManager()
    listener = RecordingSubscriber()

    assert await hub.connect(listener, ["bogus"]) == ["all"]
    assert hub.has_subscribers("metrics")
    assert await hub.broadcast("metrics", {"type": "metrics_update"}) == 1


@pytest.mark.asyncio
async def test_subscribe_ignores_unknown_topics():
    hub = ConnectionManager()

    accepted = await hub.subscribe(RecordingSubscriber(), ["audits", "bogus"])

    assert accepted == ["audits"]
    assert "bogus" not in hub.get_connection_count()
    assert hub.get_connection_count()["all"] == 0


@pytest.mark.asyncio
async def test_failed_subscriber_is_dropped():
    hub = ConnectionManager()
    good = RecordingSubscriber()
    await hub.connect(good, ["metrics"])
    await hub.connect(BrokenSubscriber(), ["metrics"])

    assert await hub.broadcast("metrics", {"type": "metrics_update"}) == 1
    assert hub.get_connection_count()["metrics"] == 1


@pytest.mark.asyncio
async def test_log_activity_is_broadcast(activity, notifier):
    listener = RecordingSubscriber()
    await notifier.subscribe(listener, ["activity"])

    entry = await activity.log_activity(None, "create", "report", 5, "Created new report: Q1")

    assert entry.id is not None
    event = listener.of_type("activity")[0]
    assert event["data"]["description"] == "Created new report: Q1"
    assert event["data"]["entityId"] == "5"
    assert event["data"]["entityType"] == "report"


@pytest.mark.asyncio
async def test_log_activity_falls_back_when_store_fails(session_maker, notifier):
    sink = ActivitySink(FlakyGateway(session_maker, failing={"record activity"}), notifier)

    assert await sink.log_activity(1, "delete", "audit", 9, "Deleted audit: Old") is None


@pytest.mark.asyncio
async def test_recent_is_newest_first(activity):
    for i in range(3):
        await activity.log_activity(None, "update", "audit", i, f"Updated audit {i}")

    feed = await activity.recent(2)

    assert [e.description for e in feed] == ["Updated audit 2", "Updated audit 1"]


@pytest.mark.asyncio
async def test_dashboard_metrics(activity, audits, add_vulnerabilities, audit_payload):
    await add_vulnerabilities([("critical", "open"), ("high", "in_progress"), ("low", "resolved")])
    created = await audits.create(AuditCreate.model_validate(audit_payload))
    await audits.create(AuditCreate.model_validate(audit_payload))
    await audits.start(created.id)
    await audits.complete(created.id)

    metrics = await activity.dashboard_metrics()

    assert metrics.total_assets == 2
    assert metrics.total_audits == 2
    assert metrics.active_audits == 1
    assert metrics.completed_audits == 1
    assert metrics.open_vulnerabilities == 2
    assert metrics.critical_vulnerabilities == 1


@pytest.mark.asyncio
async def test_metrics_skipped_without_listeners(activity):
    assert await activity.broadcast_metrics_update() == 0


@pytest.mark.asyncio
async def test_metrics_skipped_for_other_topic_listeners(activity, notifier):
    listener = RecordingSubscriber()
    await notifier.connect(listener, ["audits"])

    assert await activity.broadcast_metrics_update() == 0
    assert listener.messages == []
