"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database, a session bound to it and,
for API tests, an httpx client talking to the FastAPI app in-process.
"""

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.api.deps import get_session, get_valid_hours
from app.main import app
from app.models.appointment import Appointment

VALID_HOURS = ("09:00:00", "10:00:00", "11:00:00")


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(async_engine) -> async_sessionmaker:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def valid_hours() -> tuple[str, ...]:
    return VALID_HOURS


@pytest_asyncio.fixture
async def make_appointment(session_maker):
    """Insert and commit an appointment directly, bypassing validation."""

    async def _make(start: datetime, name: str = "Ada Lovelace", email: str = "ada@analytical.org") -> Appointment:
        async with session_maker() as session:
            appointment = Appointment(name=name, email=email, start=start)
            session.add(appointment)
            await session.commit()
            await session.refresh(appointment)
            return appointment

    return _make


# ============================================================================
# HTTP CLIENT
# ============================================================================


@pytest_asyncio.fixture
async def client(session_maker, valid_hours) -> AsyncGenerator[AsyncClient, None]:
    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_valid_hours] = lambda: valid_hours
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
