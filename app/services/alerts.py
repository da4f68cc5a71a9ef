"""
Security alert derivation.

Alerts are never stored. They are rebuilt from the activity feed every time
the feed changes:

1. keep "create" activity whose title mentions "vulnerability" or "Critical"
2. newest first, at most MAX_FEED_ALERTS
3. map severity onto critical / warning / info
4. append the static seed alerts and cap at MAX_ALERTS

The keyword match is case-sensitive and asymmetric: "vulnerability" in
lower case, "Critical" capitalised.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from app.schemas.activity import ActivityResponse, SecurityAlert

MAX_FEED_ALERTS = 5
MAX_ALERTS = 6

ALERT_KEYWORDS = ("vulnerability", "Critical")
ALERT_TYPES = ("critical", "warning")


def _seed_alerts(now: datetime) -> List[SecurityAlert]:
    return [
        SecurityAlert(
            id="static-1",
            type="critical",
            title="Critical Vulnerability Detected",
            description="SQL injection vulnerability found in login system",
            timestamp=now - timedelta(hours=2),
            resolved=False,
        ),
        SecurityAlert(
            id="static-2",
            type="warning",
            title="Audit Deadline Approaching",
            description="Q1 VAPT assessment due in 3 days",
            timestamp=now - timedelta(hours=4),
            resolved=False,
        ),
        SecurityAlert(
            id="static-3",
            type="info",
            title="Security Scan Completed",
            description="Weekly vulnerability scan finished successfully",
            timestamp=now - timedelta(hours=6),
            resolved=True,
        ),
    ]


def is_alert_worthy(entry: ActivityResponse) -> bool:
    return entry.action == "create" and any(k in entry.description for k in ALERT_KEYWORDS)


def alert_type_for(severity: Optional[str]) -> str:
    return severity if severity in ALERT_TYPES else "info"


def to_alert(entry: ActivityResponse, index: int) -> SecurityAlert:
    return SecurityAlert(
        id=str(entry.id) if entry.id is not None else f"alert-{index}",
        type=alert_type_for(entry.severity),
        title=entry.description,
        description=f"{entry.entity_type.capitalize()} #{entry.entity_id}" if entry.entity_id else entry.entity_type,
        timestamp=entry.timestamp,
        resolved=False,
        severity=entry.severity,
    )


def derive_alerts(
    feed: Iterable[ActivityResponse],
    now: Optional[datetime] = None,
) -> List[SecurityAlert]:
    """Build the bounded alert list for the current activity feed."""
    now = now or datetime.now(timezone.utc)

    matching = sorted(
        (entry for entry in feed if is_alert_worthy(entry)),
        key=lambda entry: entry.timestamp,
        reverse=True,
    )[:MAX_FEED_ALERTS]

    alerts = [to_alert(entry, i) for i, entry in enumerate(matching)]
    return (alerts + _seed_alerts(now))[:MAX_ALERTS]


class AlertBoard:
    """
    Alert list with local resolve/dismiss state.

    The state is session-local: ``refresh`` rebuilds the list from the feed
    and forgets anything resolved or dismissed before.
    """

    def __init__(self, feed: Iterable[ActivityResponse] = (), now: Optional[datetime] = None):
        self.alerts: List[SecurityAlert] = derive_alerts(feed, now)

    def refresh(self, feed: Iterable[ActivityResponse], now: Optional[datetime] = None) -> List[SecurityAlert]:
        self.alerts = derive_alerts(feed, now)
        return self.alerts

    def resolve(self, alert_id: str) -> bool:
        for i, alert in enumerate(self.alerts):
            if alert.id == alert_id:
                self.alerts[i] = alert.model_copy(update={"resolved": True})
                return True
        return False

    def resolve_all(self) -> int:
        """Mark every alert resolved. Returns how many changed."""
        changed = sum(1 for a in self.alerts if not a.resolved)
        self.alerts = [a.model_copy(update={"resolved": True}) for a in self.alerts]
        return changed

    def dismiss(self, alert_id: str) -> bool:
        remaining = [a for a in self.alerts if a.id != alert_id]
        removed = len(remaining) != len(self.alerts)
        self.alerts = remaining
        return removed

    @property
    def active(self) -> List[SecurityAlert]:
        return [a for a in self.alerts if not a.resolved]

    @property
    def resolved(self) -> List[SecurityAlert]:
        return [a for a in self.alerts if a.resolved]
