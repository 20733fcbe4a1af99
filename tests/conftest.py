"""Shared test fixtures for the Planboard backend.

Provides:
- Async test database (fresh schema per test; in-memory SQLite unless
  TEST_DATABASE_URL points at PostgreSQL)
- FastAPI test client with overridden DB dependency
- Factory helpers for organizations, users, custom roles, projects and
  explicit project role assignments
"""

from __future__ import annotations

import os
import uuid

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from planboard.core.security import create_access_token, hash_password
from planboard.models import Base

# ---------------------------------------------------------------------------
# Database engine
# ---------------------------------------------------------------------------


def _test_db_url() -> str:
    return os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest.fixture
async def test_engine():
    """Engine with a freshly created schema. Dropped at teardown.

    SQLite uses a single shared in-memory connection (StaticPool); other
    databases use NullPool so no connection outlives the test's event loop.
    """
    url = _test_db_url()
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url, poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    else:
        engine = create_async_engine(url, poolclass=NullPool)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError) as exc:
        await engine.dispose()
        pytest.skip(f"Test database not available ({exc})")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(test_engine):
    """Session shared by the test body and the app under test."""
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        yield session


# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def app(db):
    """Minimal FastAPI test app with ``get_db`` overridden to use the test session."""
    from fastapi import FastAPI
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded

    from planboard.api.v1.router import api_router
    from planboard.config import settings
    from planboard.core.errors import register_exception_handlers
    from planboard.core.rate_limit import limiter
    from planboard.database import get_db

    test_app = FastAPI()
    test_app.state.limiter = limiter
    test_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    async def _override_get_db():
        yield db

    test_app.dependency_overrides[get_db] = _override_get_db
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """HTTP test client for the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting during tests to avoid 429 responses."""
    from planboard.core.rate_limit import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


async def create_organization(db, *, name="Acme"):
    """Insert an organization into the test database."""
    from planboard.models.organization import Organization

    org = Organization(name=name)
    db.add(org)
    await db.flush()
    return org


async def create_custom_role(db, *, organization, name="Custom Role", permissions=None, **kwargs):
    """Insert a custom role into the test database."""
    from planboard.models.custom_role import CustomRole

    role = CustomRole(
        name=name,
        description=kwargs.get("description"),
        permissions=list(permissions) if permissions is not None else [],
        organization_id=organization.id,
        created_by=kwargs.get("created_by"),
        is_active=kwargs.get("is_active", True),
    )
    db.add(role)
    await db.flush()
    return role


async def create_user(
    db,
    *,
    organization=None,
    email=None,
    role="team_member",
    password="TestPassword1",
    display_name="Test User",
    custom_role=None,
    is_active=True,
):
    """Insert a user into the test database. Creates an organization if none is given."""
    from planboard.models.user import User

    if organization is None:
        organization = await create_organization(db)
    user = User(
        email=email or f"test-{uuid.uuid4().hex[:8]}@planboard.io",
        display_name=display_name,
        password_hash=hash_password(password),
        role=role,
        organization_id=organization.id,
        custom_role=custom_role,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    return user


async def create_project(
    db,
    *,
    organization,
    created_by,
    name="Test Project",
    team_members=(),
    client=None,
    archived=False,
):
    """Insert a project into the test database."""
    from planboard.models.project import Project

    project = Project(
        name=name,
        organization_id=organization.id,
        created_by=created_by.id,
        client_id=client.id if client is not None else None,
        archived=archived,
        team_members=list(team_members),
        role_assignments=[],
    )
    db.add(project)
    await db.flush()
    return project


async def assign_project_role(db, *, project, user, role):
    """Give ``user`` an explicit role on ``project``."""
    from planboard.models.project import ProjectRoleAssignment

    assignment = ProjectRoleAssignment(user_id=user.id, role=getattr(role, "value", role))
    project.role_assignments.append(assignment)
    await db.flush()
    return assignment


def auth_headers(user) -> dict[str, str]:
    """Generate Bearer token headers for a test user."""
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Convenience fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def org(db):
    return await create_organization(db, name="Org One")


@pytest.fixture
async def other_org(db):
    return await create_organization(db, name="Org Two")


@pytest.fixture
async def admin_user(db, org):
    return await create_user(db, organization=org, email="admin@planboard.io", role="admin")


@pytest.fixture
async def pm_user(db, org):
    return await create_user(db, organization=org, email="pm@planboard.io", role="project_manager")


@pytest.fixture
async def member_user(db, org):
    return await create_user(db, organization=org, email="member@planboard.io", role="team_member")


@pytest.fixture
async def viewer_user(db, org):
    return await create_user(db, organization=org, email="viewer@planboard.io", role="viewer")
