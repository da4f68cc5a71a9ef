import json
import os
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Keep the process-wide engine away from the working tree
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from app.core.database import (
    PersistenceGateway,
    create_engine_for,
    create_session_maker,
    get_gateway,
    init_db,
)
from app.core.errors import StorageError
from app.main import app
from app.models.asset import Asset, Vulnerability
from app.models.user import User
from app.services.activity import ActivitySink
from app.services.audits import AuditManager
from app.services.realtime import ConnectionManager, get_notifier
from app.services.reports import ReportManager, ReportStorage, get_report_storage


class RecordingSubscriber:
    """Collects every message pushed to it."""

    def __init__(self):
        self.messages = []

    async def send_text(self, data: str) -> None:
        self.messages.append(json.loads(data))

    def of_type(self, msg_type):
        return [m for m in self.messages if m.get("type") == msg_type]


class BrokenSubscriber:
    async def send_text(self, data: str) -> None:
        raise ConnectionResetError("socket closed")


class FlakyGateway(PersistenceGateway):
    """Gateway whose transactions fail for the listed actions."""

    def __init__(self, session_maker, failing=()):
        super().__init__(session_maker)
        self.failing = set(failing)

    @asynccontextmanager
    async def transaction(self, action):
        if action in self.failing:
            raise StorageError(f"Failed to {action}")
        async with super().transaction(action) as session:
            yield session


@pytest_asyncio.fixture
async def engine(tmp_path):
    db_path = tmp_path / "auditdesk_test.db"
    engine = create_engine_for(f"sqlite+aiosqlite:///{db_path}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def gateway(session_maker):
    async with session_maker() as session:
        session.add_all([
            User(id=1, name="Alice Auditor", email="alice@example.com"),
            User(id=2, name="Bob Owner", email="bob@example.com"),
            Asset(id=1, name="Web Portal"),
            Asset(id=2, name="Payments API"),
            Asset(id=3, name="Legacy HR", status="retired"),
        ])
        await session.commit()
    return PersistenceGateway(session_maker)


@pytest.fixture
def notifier():
    return ConnectionManager()


@pytest.fixture
def activity(gateway, notifier):
    return ActivitySink(gateway, notifier)


@pytest.fixture
def audits(gateway, activity):
    return AuditManager(gateway, activity)


@pytest.fixture
def storage(tmp_path):
    return ReportStorage(tmp_path / "files")


@pytest.fixture
def reports(gateway, activity, storage):
    return ReportManager(gateway, activity, storage)


@pytest.fixture
def add_vulnerabilities(session_maker):
    """Insert vulnerabilities given as (severity, status) pairs."""

    async def _add(rows):
        async with session_maker() as session:
            session.add_all([
                Vulnerability(title=f"Finding {i}", severity=severity, status=status, asset_id=1)
                for i, (severity, status) in enumerate(rows, start=1)
            ])
            await session.commit()

    return _add


@pytest.fixture
def audit_payload():
    return {
        "title": "Q1 Pentest",
        "type": "external",
        "scope": ["web", "api"],
        "auditorId": 1,
        "auditeeId": 2,
        "scheduledDate": "2025-01-15",
        "frequency": "quarterly",
        "assetIds": [1, 2],
    }


@pytest_asyncio.fixture
async def client(gateway, notifier, storage):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_report_storage] = lambda: storage
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
