"""
Shared test fixtures for the attendance service test suite.

Each test gets a fresh in-memory SQLite database (aiosqlite + AsyncSession),
a seeded tenant with one employee, one admin and one office location, and an
app whose DB session, current user and face embedder are overridden.
"""

import os
import sys
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_BACKEND"] = "memory"

from fastapi import Depends, HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_current_active_user, get_db, get_image_embedder
from app.core.cache import InMemoryTTLCache
from app.db.base import Base
from app.main import app
from app.models.location import Location
from app.models.tenant import Tenant
from app.models.user import User
from app.repositories.store import AttendanceStore
from tests.helpers import (ADMIN_ID, EMPLOYEE_ID, HQ_LAT, HQ_LNG, OTHER_TENANT_ID, TENANT_ID,
                           FakeEmbedder)


# Who the overridden auth dependency resolves to
_auth: dict[str, int | None] = {"user_id": EMPLOYEE_ID}


async def _override_get_current_active_user(db: AsyncSession = Depends(get_db)) -> User:
    result = await db.execute(select(User).where(User.id == _auth["user_id"]))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Could not validate credentials")
    return user


@pytest.fixture(autouse=True)
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh database per test, with the app pointed at it."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enforce foreign keys like Postgres does
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_active_user] = _override_get_current_active_user
    _auth["user_id"] = EMPLOYEE_ID
    await app.state.cache.clear()

    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seed(db_session: AsyncSession) -> dict:
    """Tenant (+07:00), an employee, an admin and one 100 m office."""
    db_session.add_all([
        Tenant(id=TENANT_ID, name="Acme", timezone_offset="+07:00"),
        Tenant(id=OTHER_TENANT_ID, name="Globex", timezone_offset="+07:00"),
    ])
    await db_session.flush()

    employee = User(
        id=EMPLOYEE_ID, tenant_id=TENANT_ID, email="budi@acme.test",
        full_name="Budi", role="employee", is_active=True, points_balance=0,
    )
    admin = User(
        id=ADMIN_ID, tenant_id=TENANT_ID, email="admin@acme.test",
        full_name="Admin", role="admin", is_active=True, points_balance=0,
    )
    hq = Location(
        tenant_id=TENANT_ID, name="HQ", latitude=HQ_LAT, longitude=HQ_LNG,
        radius_meters=100, is_active=True,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    db_session.add_all([employee, admin, hq])
    await db_session.commit()
    return {"employee": employee, "admin": admin, "hq": hq}


@pytest.fixture
def login():
    """Switch the user the API sees as authenticated."""
    def _login(user_id: int) -> None:
        _auth["user_id"] = user_id
    return _login


@pytest.fixture
def as_admin(login) -> None:
    login(ADMIN_ID)


@pytest.fixture
def embedder() -> FakeEmbedder:
    fake = FakeEmbedder()
    app.dependency_overrides[get_image_embedder] = lambda: fake
    return fake


@pytest.fixture
def store(db_session: AsyncSession) -> AttendanceStore:
    return AttendanceStore(db_session, InMemoryTTLCache(max_size=100, default_ttl=60))


@pytest.fixture
async def async_client(embedder: FakeEmbedder) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
