"""Tests for authentication."""

from datetime import timedelta

import pytest

from kanban.permissions import ALL_PERMISSION_SLUGS
from kanban.services import auth_service
from kanban.services.auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
)
from kanban.utils.security import get_password_hash, verify_password

from conftest import CONTRIBUTOR_PERMISSIONS, TEST_PASSWORD


class TestSecurityUtils:
    """Tests for password hashing helpers."""

    def test_password_hash_is_salted(self):
        first = get_password_hash(TEST_PASSWORD)
        second = get_password_hash(TEST_PASSWORD)

        assert first != second
        assert verify_password(TEST_PASSWORD, first)
        assert not verify_password("wrong", first)


class TestTokens:
    """Tests for JWT helpers."""

    def test_round_trip(self):
        token = create_access_token({"sub": "abc", "email": "a@example.com"})

        data = decode_access_token(token)

        assert data.user_id == "abc"
        assert data.email == "a@example.com"

    def test_expired_token(self):
        token = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-5))

        assert decode_access_token(token) is None

    def test_token_without_subject(self):
        assert decode_access_token(create_access_token({"email": "a@example.com"})) is None

    def test_garbage(self):
        assert decode_access_token("garbage") is None


class TestAuthenticateUser:

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, db_session, owner_user):
        user = await authenticate_user(db_session, "  OWNER@Example.com ", TEST_PASSWORD)

        assert user is not None
        assert user.id == owner_user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, owner_user):
        assert await authenticate_user(db_session, "owner@example.com", "nope") is None

    @pytest.mark.asyncio
    async def test_inactive_user(self, db_session, owner_user):
        owner_user.is_active = False
        await db_session.commit()

        assert await authenticate_user(db_session, "owner@example.com", TEST_PASSWORD) is None

    @pytest.mark.asyncio
    async def test_outdated_hash_is_upgraded(self, db_session, owner_user, monkeypatch):
        old_hash = owner_user.password_hash
        monkeypatch.setattr(auth_service, "password_needs_rehash", lambda hashed: hashed == old_hash)

        user = await authenticate_user(db_session, "owner@example.com", TEST_PASSWORD)

        assert user.password_hash != old_hash
        assert verify_password(TEST_PASSWORD, user.password_hash)


class TestAuthAPI:
    """Tests for /auth endpoints."""

    @pytest.mark.asyncio
    async def test_login(self, client, owner_user):
        response = await client.post(
            "/auth/login",
            data={"username": "owner@example.com", "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "owner@example.com"

    @pytest.mark.asyncio
    async def test_login_failure_envelope(self, client, owner_user):
        response = await client.post(
            "/auth/login",
            data={"username": "owner@example.com", "password": "wrong"},
        )

        assert response.status_code == 401
        assert response.json() == {
            "statusCode": 401,
            "message": "Incorrect email or password",
            "details": {},
        }
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_me_lists_effective_permissions(self, client, owner_headers):
        response = await client.get("/auth/me", headers=owner_headers)

        body = response.json()
        assert body["permissions"] == sorted(CONTRIBUTOR_PERMISSIONS)
        assert [r["slug"] for r in body["roles"]] == ["contributor"]

    @pytest.mark.asyncio
    async def test_super_admin_lists_everything(self, client, make_user, headers_for):
        root = await make_user("root@example.com", is_super_admin=True)

        response = await client.get("/auth/me", headers=headers_for(root))

        assert response.json()["permissions"] == sorted(ALL_PERMISSION_SLUGS)

    @pytest.mark.asyncio
    async def test_inactive_user_token_rejected(self, client, db_session, owner_user, owner_headers):
        owner_user.is_active = False
        await db_session.commit()

        response = await client.get("/auth/me", headers=owner_headers)

        assert response.status_code == 401
