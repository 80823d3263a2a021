"""Shared test fixtures - async SQLite engine, test client, auth helpers."""

import os

# Set env vars BEFORE importing app modules (config reads at import time)
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("CLIENT_PASSCODE", "BRIAN")
os.environ.setdefault("ADMIN_PASSCODE", "5786")
os.environ.setdefault("DEFAULT_TIMEZONE", "UTC")

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from questlog.core.database import build_engine, get_db  # noqa: E402
from questlog.main import app  # noqa: E402
from questlog.models import Base, User, UserRole  # noqa: E402
from questlog.services.auth import create_access_token  # noqa: E402
from questlog.services.seed_data import seed_achievements, seed_tasks  # noqa: E402

# Async SQLite engine for tests (in-memory, one shared connection, foreign keys on)
test_engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db():
    async with TestSession() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def db():
    """A session for arranging and inspecting data directly."""
    async with TestSession() as session:
        yield session


@pytest.fixture
async def seeded(db):
    """Protocol tasks and the achievement catalog."""
    await seed_tasks(db)
    await seed_achievements(db)
    await db.commit()


@pytest.fixture
async def client():
    """Async HTTP test client for the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# --- Test data factories ---

async def make_user(db: AsyncSession, **overrides) -> User:
    """Insert a user with sensible defaults."""
    defaults = {
        "external_id": "test-client",
        "name": "Brian",
        "role": UserRole.CLIENT.value,
        "is_active": True,
        "current_week": 1,
    }
    defaults.update(overrides)
    user = User(**defaults)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def client_user(db, seeded):
    return await make_user(db)


@pytest.fixture
async def admin_user(db):
    return await make_user(db, external_id="test-admin", name="Therapist", role=UserRole.ADMIN.value)


@pytest.fixture
def auth_headers(client_user):
    """Authorization headers for the client user."""
    return auth_headers_for(client_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers_for(admin_user)


def at(year: int, month: int, day: int, hour: int = 9, minute: int = 0) -> datetime:
    """A UTC completion time."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
