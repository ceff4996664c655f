"""
Shared test fixtures.

Every test gets a fresh in-memory SQLite database. Redis and outbound
email are replaced with AsyncMocks so nothing leaves the process.
"""

from __future__ import annotations

import os

os.environ.setdefault("TASKARD_ENVIRONMENT", "test")
os.environ.setdefault("TASKARD_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TASKARD_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("TASKARD_SCHEDULER_ENABLED", "false")
os.environ.setdefault("TASKARD_LOG_FORMAT", "console")

import uuid  # noqa: E402
from datetime import timedelta  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.core.auth import create_access_token, hash_password  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.base import utcnow  # noqa: E402
from app.models.project import Project  # noqa: E402
from app.models.task import Task  # noqa: E402
from app.models.user import User  # noqa: E402
from app.models.workspace import Workspace  # noqa: E402
from app.models.workspace_member import WorkspaceMember  # noqa: E402

TEST_PASSWORD = "Correct-Horse-42"
# bcrypt at cost 12 is slow; hash once per run.
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def bearer(user: User, **kwargs) -> dict[str, str]:
    token, _ = create_access_token(user.id, **kwargs)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    """Build an Authorization header for a user."""
    return bearer


@pytest.fixture
def password():
    return TEST_PASSWORD


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# External services
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fake_redis():
    redis = AsyncMock()
    redis.exists.return_value = 0
    with patch("app.core.auth.get_redis", AsyncMock(return_value=redis)):
        yield redis


@pytest.fixture(autouse=True)
def sent_emails():
    """Every outbound email, as recorded calls on an AsyncMock."""
    with patch("app.services.email.send_email", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def invite_emails():
    """Capture invitation emails so tests can read the plaintext token."""
    with patch(
        "app.services.email.send_workspace_invite_email", new_callable=AsyncMock
    ) as mock:
        yield mock


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories (each commits in its own session)
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(session_factory):
    async def _make(email: str | None = None, name: str = "Test User", **fields) -> User:
        fields.setdefault("email_verified", True)
        fields.setdefault("password_hash", TEST_PASSWORD_HASH)
        user = User(email=email or f"user-{uuid.uuid4().hex[:8]}@example.com", name=name, **fields)
        async with session_factory() as s:
            s.add(user)
            await s.commit()
        return user

    return _make


@pytest.fixture
def make_workspace(session_factory):
    async def _make(owner: User, name: str = "Acme") -> Workspace:
        workspace = Workspace(name=name, owner_id=owner.id)
        async with session_factory() as s:
            s.add(workspace)
            await s.flush()
            s.add(WorkspaceMember(user_id=owner.id, workspace_id=workspace.id, role="ADMIN"))
            await s.commit()
        return workspace

    return _make


@pytest.fixture
def add_member(session_factory):
    async def _add(workspace: Workspace, user: User, role: str = "MEMBER") -> WorkspaceMember:
        member = WorkspaceMember(user_id=user.id, workspace_id=workspace.id, role=role)
        async with session_factory() as s:
            s.add(member)
            await s.commit()
        return member

    return _add


@pytest.fixture
def make_project(session_factory):
    async def _make(workspace: Workspace, creator: User | None = None, name: str = "Launch") -> Project:
        project = Project(
            workspace_id=workspace.id,
            name=name,
            creator_id=creator.id if creator else None,
        )
        async with session_factory() as s:
            s.add(project)
            await s.commit()
        return project

    return _make


@pytest.fixture
def make_task(session_factory):
    _tick = iter(range(10_000))

    async def _make(
        project: Project,
        creator: User | None = None,
        title: str = "Write docs",
        parent: Task | None = None,
        **fields,
    ) -> Task:
        # Distinct creation times keep default newest-first ordering deterministic.
        fields.setdefault("created_at", utcnow() + timedelta(milliseconds=next(_tick)))
        task = Task(
            project_id=project.id,
            title=title,
            creator_id=creator.id if creator else None,
            parent_task_id=parent.id if parent else None,
            **fields,
        )
        async with session_factory() as s:
            s.add(task)
            await s.commit()
        return task

    return _make
