"""Shared test fixtures for the contentplan test suite.

Each test gets its own SQLite file database so that concurrent writers use
genuinely separate connections, the same way separate API workers would.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_URL_SYNC", "sqlite:///:memory:")

import uuid
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from contentplan.auth.tokens import create_access_token
from contentplan.core.database import Base, get_db
from contentplan.main import app
from contentplan.models.enums import DocumentKind, WorkspaceRole
from contentplan.modules.documents.dependencies import get_version_gate
from contentplan.modules.documents.gate import DocumentState, VersionGate
from contentplan.services.audit_trail import AuditEvent, AuditTrailEmitter

# ── Sample identifiers ────────────────────────────────────────────────────

WORKSPACE_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
EDITOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
OTHER_EDITOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
VIEWER_ID = uuid.UUID("00000000-0000-0000-0000-000000000004")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000005")
VIDEO_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")


class RecordingAuditSink:
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def write(self, event: AuditEvent) -> None:
        self.events.append(event)


def auth_headers(user_id: uuid.UUID, role: WorkspaceRole) -> dict[str, str]:
    token = create_access_token(user_id, WORKSPACE_ID, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
        poolclass=NullPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def audit_emitter(audit_sink: RecordingAuditSink) -> AuditTrailEmitter:
    return AuditTrailEmitter(audit_sink)


@pytest.fixture
def gate(session_factory, audit_emitter: AuditTrailEmitter) -> VersionGate:
    return VersionGate(session_factory, audit_emitter)


@pytest.fixture
async def document(gate: VersionGate) -> DocumentState:
    """A script document at version 1."""
    return await gate.create(WORKSPACE_ID, VIDEO_ID, DocumentKind.SCRIPT, EDITOR_ID, "Cold open: v1")


@pytest.fixture
async def client(gate: VersionGate, session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def _override_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_version_gate] = lambda: gate
    app.dependency_overrides[get_db] = _override_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def editor_client(client: AsyncClient) -> AsyncClient:
    client.headers.update(auth_headers(EDITOR_ID, WorkspaceRole.EDITOR))
    return client
