"""
Tests for the account endpoints.

Covers registration, login (including inactive accounts and legacy
password hashes), token refresh and rotation, logout, profile, password
change and API key rotation.
"""

import hashlib

import pytest
from sqlalchemy import select

from brandmind.credentials.passwords import verify_password
from brandmind.entitlements.models import Plan, SubscriptionStatus
from brandmind.models.subscription import Subscription
from brandmind.models.user import User

USER_PASSWORD = "Abcdef12"


async def _login(client, email, password=USER_PASSWORD):
    return await client.post("/api/auth/login", json={"email": email, "password": password})


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_creates_inactive_account(self, client, app):
        response = await client.post(
            "/api/auth/register",
            json={"email": "New@Example.com", "password": "Abcdef12", "name": "New", "telegram_username": "newbie"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "new@example.com"
        assert body["data"]["status"] == "pending_activation"

        async with app.state.session_factory() as s:
            user = (await s.execute(select(User).where(User.email == "new@example.com"))).scalar_one()
            subscription = (
                await s.execute(select(Subscription).where(Subscription.user_id == user.id))
            ).scalar_one()

        assert user.is_active is False
        assert user.api_key.startswith("bm_live_")
        assert user.password_hash.startswith("$pbkdf2-sha256$")
        assert subscription.plan is Plan.FREE
        assert subscription.status is SubscriptionStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, make_user):
        await make_user("taken@b.com")

        response = await client.post(
            "/api/auth/register",
            json={"email": "TAKEN@b.com", "password": "Abcdef12", "name": "Dup"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "email_exists"

    @pytest.mark.asyncio
    async def test_weak_password(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "weak@b.com", "password": "abcdefgh", "name": "Weak"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "weak_password"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "password": "Abcdef12", "name": "Bad"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_tokens_and_subscription(self, client, app, make_user):
        await make_user("pro@b.com", plan=Plan.PRO)

        response = await _login(client, "PRO@b.com")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["email"] == "pro@b.com"
        assert data["subscription"]["plan"] == "pro"
        assert "ad_generator" in data["subscription"]["features"]
        assert data["tokens"]["token_type"] == "Bearer"
        assert data["tokens"]["expires_in"] == 3600
        assert data["tokens"]["refresh_token"].startswith("rt_")
        assert data["api_key"].startswith("bm_live_")

        claims = app.state.token_service.verify(data["tokens"]["access_token"])
        assert claims["plan"] == "pro"
        assert claims["role"] == "user"

    @pytest.mark.asyncio
    async def test_login_without_subscription_claims_free(self, client, app, make_user):
        await make_user("nosub@b.com", plan=None)

        response = await _login(client, "nosub@b.com")

        data = response.json()["data"]
        assert data["subscription"] is None
        assert app.state.token_service.verify(data["tokens"]["access_token"])["plan"] == "free"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, make_user):
        await make_user("a@b.com")

        response = await _login(client, "a@b.com", "Wrong1234")

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_unknown_email(self, client):
        response = await _login(client, "ghost@b.com")

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_inactive_account(self, client, make_user):
        await make_user("pending@b.com", is_active=False)

        response = await _login(client, "pending@b.com")

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "account_inactive"
        assert body["telegram_activation"] is True

    @pytest.mark.asyncio
    async def test_inactive_account_wrong_password_is_invalid_credentials(self, client, make_user):
        await make_user("pending@b.com", is_active=False)

        response = await _login(client, "pending@b.com", "Wrong1234")

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_legacy_hash_upgraded_on_login(self, client, app, session, make_user):
        user = await make_user("legacy@b.com")
        user.password_hash = hashlib.sha256(USER_PASSWORD.encode()).hexdigest()
        await session.commit()

        response = await _login(client, "legacy@b.com")

        assert response.status_code == 200
        async with app.state.session_factory() as s:
            stored = await s.get(User, user.id)
            assert stored.password_hash.startswith("$pbkdf2-sha256$")
            assert stored.last_login is not None


class TestRefreshAndLogout:

    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, client, make_user):
        await make_user("a@b.com")
        tokens = (await _login(client, "a@b.com")).json()["data"]["tokens"]

        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        rotated = response.json()["data"]
        assert rotated["refresh_token"] != tokens["refresh_token"]

        reuse = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert reuse.status_code == 401
        assert reuse.json()["error"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_second_login_invalidates_first_refresh_token(self, client, make_user):
        await make_user("a@b.com")
        first = (await _login(client, "a@b.com")).json()["data"]["tokens"]["refresh_token"]
        await _login(client, "a@b.com")

        response = await client.post("/api/auth/refresh", json={"refresh_token": first})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_refresh_token(self, client):
        response = await client.post("/api/auth/refresh", json={"refresh_token": "garbage"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_logout_revokes_refresh_token(self, client, make_user):
        await make_user("a@b.com")
        tokens = (await _login(client, "a@b.com")).json()["data"]["tokens"]
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200

        refresh = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refresh.status_code == 401

        # Access tokens are stateless and stay valid until expiry
        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200


class TestProfile:

    @pytest.mark.asyncio
    async def test_me(self, client, make_user, auth_headers):
        user = await make_user("me@b.com", plan=Plan.BASIC)

        response = await client.get("/api/auth/me", headers=auth_headers(user))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "me@b.com"
        assert data["has_completion_key"] is False
        assert data["subscription"]["plan"] == "basic"

    @pytest.mark.asyncio
    async def test_change_password(self, client, app, make_user, auth_headers):
        user = await make_user("a@b.com")

        response = await client.put(
            "/api/auth/change-password",
            headers=auth_headers(user),
            json={"current_password": USER_PASSWORD, "new_password": "Newpass99"},
        )

        assert response.status_code == 200
        async with app.state.session_factory() as s:
            assert verify_password("Newpass99", (await s.get(User, user.id)).password_hash)

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, client, make_user, auth_headers):
        user = await make_user("a@b.com")

        response = await client.put(
            "/api/auth/change-password",
            headers=auth_headers(user),
            json={"current_password": "Wrong1234", "new_password": "Newpass99"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_password"

    @pytest.mark.asyncio
    async def test_change_password_weak(self, client, make_user, auth_headers):
        user = await make_user("a@b.com")

        response = await client.put(
            "/api/auth/change-password",
            headers=auth_headers(user),
            json={"current_password": USER_PASSWORD, "new_password": "short"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "weak_password"

    @pytest.mark.asyncio
    async def test_regenerate_api_key(self, client, make_user, auth_headers):
        user = await make_user("a@b.com")
        old_key = user.api_key

        response = await client.post("/api/auth/regenerate-api-key", headers=auth_headers(user))

        new_key = response.json()["data"]["api_key"]
        assert new_key != old_key
        assert (await client.get("/api/auth/me", headers={"X-API-Key": old_key})).status_code == 401
        assert (await client.get("/api/auth/me", headers={"X-API-Key": new_key})).status_code == 200
