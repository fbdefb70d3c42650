"""
Pytest fixtures for test database, client, and caller identities.

Each test gets its own SQLite file database. A file (not :memory:) lets the
concurrency tests open several sessions on separate connections.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from villa_booking.core.config import get_settings
from villa_booking.core.security import Caller, Role, create_access_token
from villa_booking.db.base import Base
from villa_booking.db.session import get_db, unit_of_work
from villa_booking.main import app
from villa_booking.models import Unit

settings = get_settings()

# Fixed clock for service-level tests
NOW = datetime(2024, 5, 20, 9, 0, tzinfo=timezone.utc)
JUNE_1 = datetime(2024, 6, 1, tzinfo=timezone.utc)
JUNE_5 = datetime(2024, 6, 5, tzinfo=timezone.utc)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'villa_test.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        session.add(Unit(id=settings.UNIT_ID, name=settings.UNIT_NAME))
        await session.commit()
    return factory


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        async with unit_of_work(db_session):
            yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def guest() -> Caller:
    return Caller(user_id="guest-1", role=Role.GUEST)


@pytest.fixture
def other_guest() -> Caller:
    return Caller(user_id="guest-2", role=Role.GUEST)


@pytest.fixture
def reviewer() -> Caller:
    return Caller(user_id="reviewer-1", role=Role.REVIEWER)


def _headers(caller: Caller) -> dict:
    token = create_access_token(caller.user_id, role=caller.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def guest_headers(guest) -> dict:
    return _headers(guest)


@pytest.fixture
def other_headers(other_guest) -> dict:
    return _headers(other_guest)


@pytest.fixture
def reviewer_headers(reviewer) -> dict:
    return _headers(reviewer)


@pytest.fixture
def future_stay() -> dict:
    """Four nights starting a month from today, as ISO strings."""
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    check_in = today + timedelta(days=30)
    return {
        "check_in": check_in.isoformat(),
        "check_out": (check_in + timedelta(days=4)).isoformat(),
    }


CUSTOMER = {
    "first_name": "Somchai",
    "last_name": "Jaidee",
    "email": "somchai@example.com",
    "phone": "+66 81 234 5678",
}
