from datetime import datetime, timedelta, timezone

from app.schemas.activity import ActivityResponse
from app.services.alerts import MAX_ALERTS, AlertBoard, alert_type_for, derive_alerts

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def entry(i, description, action="create", severity=None, minutes_ago=0):
    return ActivityResponse(
        id=i,
        action=action,
        entity_type="vulnerability",
        entity_id=str(i),
        description=description,
        severity=severity,
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )


def test_empty_feed_yields_seed_alerts():
    alerts = derive_alerts([], NOW)

    assert [a.id for a in alerts] == ["static-1", "static-2", "static-3"]
    assert alerts[0].timestamp == NOW - timedelta(hours=2)
    assert alerts[2].resolved


def test_alert_list_is_capped():
    feed = [entry(i, f"New vulnerability {i}", minutes_ago=i) for i in range(1, 8)]

    alerts = derive_alerts(feed, NOW)

    assert len(alerts) == MAX_ALERTS
    # Five newest feed alerts, then the first seed
    assert [a.id for a in alerts] == ["1", "2", "3", "4", "5", "static-1"]


def test_keyword_match_is_case_sensitive():
    feed = [
        entry(1, "New vulnerability in login"),
        entry(2, "Critical patch missing"),
        entry(3, "critical patch missing"),
        entry(4, "Vulnerability scan scheduled"),
        entry(5, "vulnerability re-tested", action="update"),
    ]

    ids = [a.id for a in derive_alerts(feed, NOW) if not a.id.startswith("static")]

    assert ids == ["1", "2"]


def test_alert_fields():
    alert = derive_alerts([entry(7, "Critical vulnerability found", severity="critical")], NOW)[0]

    assert alert.type == "critical"
    assert alert.title == "Critical vulnerability found"
    assert alert.description == "Vulnerability #7"
    assert alert.resolved is False


def test_severity_mapping():
    assert alert_type_for("critical") == "critical"
    assert alert_type_for("warning") == "warning"
    assert alert_type_for("high") == "info"
    assert alert_type_for(None) == "info"


def test_board_resolve_and_dismiss():
    board = AlertBoard([entry(1, "New vulnerability")], NOW)

    assert board.resolve("1")
    assert [a.id for a in board.resolved] == ["1", "static-3"]

    assert board.dismiss("static-1")
    assert not board.dismiss("static-1")
    assert [a.id for a in board.active] == ["static-2"]

    # Refresh rebuilds from the feed and forgets local state
    board.refresh([entry(1, "New vulnerability")], NOW)
    assert len(board.alerts) == 4
    assert not board.resolve("missing")


def test_board_resolve_all():
    board = AlertBoard([entry(1, "New vulnerability"), entry(2, "Critical patch missing")], NOW)

    # static-3 starts resolved
    assert board.resolve_all() == 4
    assert board.active == []
    assert len(board.resolved) == 5
    assert board.resolve_all() == 0
