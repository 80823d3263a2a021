"""Tests for engine setup and the script session scope."""
import pytest
from unittest.mock import patch

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from questlog.core.database import get_async_database_url, session_scope
from questlog.models import NotificationSettings, User
from tests.conftest import TestSession


class TestDatabaseURL:

    @pytest.mark.parametrize("url,expected", [
        ("postgres://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
        ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ])
    def test_async_driver(self, url, expected):
        assert get_async_database_url(url) == expected


class TestSQLiteForeignKeys:

    async def test_unknown_user_rejected(self, db):
        db.add(NotificationSettings(user_id=12345, enabled=True, reminder_time="09:00"))
        with pytest.raises(IntegrityError):
            await db.flush()
        await db.rollback()


class TestSessionScope:

    async def test_commits_on_success(self, db):
        with patch("questlog.core.database.async_session_maker", TestSession):
            async with session_scope() as session:
                session.add(User(external_id="scoped", name="Scoped"))

        assert await db.scalar(select(User).where(User.external_id == "scoped")) is not None

    async def test_rolls_back_on_error(self, db):
        with patch("questlog.core.database.async_session_maker", TestSession):
            with pytest.raises(RuntimeError):
                async with session_scope() as session:
                    session.add(User(external_id="scoped", name="Scoped"))
                    await session.flush()
                    raise RuntimeError("seed failed")

        assert await db.scalar(select(User).where(User.external_id == "scoped")) is None
