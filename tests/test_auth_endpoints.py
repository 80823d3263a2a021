"""Tests for passcode login, token handling and /auth/me."""
import pytest
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy import func, select

from questlog.core.config import Settings
from questlog.models.activity import ActivityLog
from questlog.models.progression import UserProgression
from questlog.models.user import User
from questlog.services.auth import (
    ADMIN_EXTERNAL_ID,
    CLIENT_EXTERNAL_ID,
    create_access_token,
    decode_access_token,
    resolve_passcode,
)


class TestTokens:

    def test_round_trip(self):
        assert decode_access_token(create_access_token(42)) == 42

    def test_expired(self):
        token = create_access_token(42, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_garbage(self):
        assert decode_access_token("garbage") is None


class TestResolvePasscode:

    def test_client_case_insensitive(self):
        assert resolve_passcode("  brian ")[0] == CLIENT_EXTERNAL_ID

    def test_admin_exact(self):
        assert resolve_passcode("5786")[0] == ADMIN_EXTERNAL_ID

    def test_unknown(self):
        assert resolve_passcode("letmein") is None

    def test_client_passcode_unset_by_default(self):
        assert Settings.model_fields["client_passcode"].default == ""
        assert Settings.model_fields["admin_passcode"].default == ""

    def test_client_login_disabled_when_unset(self):
        with patch("questlog.services.auth.settings.client_passcode", ""):
            assert resolve_passcode("") is None
            assert resolve_passcode("brian") is None


class TestLogin:

    async def test_client_login_creates_user_and_progression(self, client, db):
        response = await client.post("/api/v1/auth/login", json={"passcode": "Brian"})

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "client"
        assert data["token_type"] == "bearer"

        user = await db.scalar(select(User).where(User.external_id == CLIENT_EXTERNAL_ID))
        assert user is not None
        assert user.last_signed_in is not None
        progression = await db.scalar(select(UserProgression).where(UserProgression.user_id == user.id))
        assert progression.total_xp == 0
        assert progression.current_level == 1

    async def test_repeat_login_reuses_user(self, client, db):
        await client.post("/api/v1/auth/login", json={"passcode": "BRIAN"})
        await client.post("/api/v1/auth/login", json={"passcode": "brian"})

        users = (await db.execute(select(User))).scalars().all()
        assert len(users) == 1

    async def test_admin_login(self, client):
        response = await client.post("/api/v1/auth/login", json={"passcode": "5786"})
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    async def test_wrong_passcode(self, client):
        response = await client.post("/api/v1/auth/login", json={"passcode": "nope"})
        assert response.status_code == 401

    async def test_empty_passcode(self, client):
        response = await client.post("/api/v1/auth/login", json={"passcode": ""})
        assert response.status_code == 422

    async def test_token_from_login_works(self, client):
        login = await client.post("/api/v1/auth/login", json={"passcode": "BRIAN"})
        token = login.json()["access_token"]

        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["name"] == "Brian"
        assert response.json()["current_week"] == 1


class TestLogout:

    async def test_records_logout(self, client, db, auth_headers, client_user):
        response = await client.post("/api/v1/auth/logout", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        log = await db.scalar(select(ActivityLog).where(ActivityLog.user_id == client_user.id))
        assert log.action_type == "logout"

    async def test_without_token(self, client, db):
        response = await client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert await db.scalar(select(func.count(ActivityLog.id))) == 0

    async def test_with_expired_token(self, client, db, client_user):
        token = create_access_token(client_user.id, expires_delta=timedelta(seconds=-1))
        response = await client.post("/api/v1/auth/logout", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert await db.scalar(select(func.count(ActivityLog.id))) == 0

class TestMe:

    async def test_requires_auth(self, client):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    async def test_unknown_user(self, client):
        token = create_access_token(9999)
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_inactive_user(self, client, db):
        from tests.conftest import auth_headers_for, make_user
        user = await make_user(db, is_active=False)
        response = await client.get("/api/v1/auth/me", headers=auth_headers_for(user))
        assert response.status_code == 403


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
