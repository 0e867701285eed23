"""
Tests for the authorization pipeline.

Verifies:
- Authentication by bearer token or X-API-Key, bearer taking precedence
- Each 401 error code
- Plan and feature gates read the stored subscription, not token claims
- Gates fail closed without an authentication stage
- The register -> activate -> login -> generate journey end to end
"""

import time

import pytest
from fastapi import Depends

from brandmind.api.dependencies import (
    guard,
    optional_auth,
    require_auth,
    require_feature,
    require_plan,
    require_role,
)
from brandmind.entitlements.errors import EntitlementEvaluationError
from brandmind.entitlements.models import Plan, Role
from brandmind.entitlements.service import EntitlementService
from brandmind.platform.request_context import AUTH_METHOD_API_KEY, AUTH_METHOD_BEARER
from brandmind.services.token_service import TokenService


@pytest.fixture
def gated_app(app):
    """The application with a few extra routes exercising each gate."""

    @app.get("/test/whoami", dependencies=guard(require_auth))
    async def whoami(context=Depends(require_auth)):
        return {
            "user_id": context.user_id,
            "auth_method": context.auth_method,
            "plan": context.plan.value if context.plan else None,
        }

    @app.get("/test/pro", dependencies=guard(require_auth, require_plan(Plan.PRO)))
    async def pro_only():
        return {"ok": True}

    @app.get("/test/platinum", dependencies=guard(require_auth, require_plan("platinum")))
    async def platinum_only():
        return {"ok": True}

    @app.get("/test/white-label", dependencies=guard(require_auth, require_feature("white_label")))
    async def white_label():
        return {"ok": True}

    @app.get("/test/unguarded-plan", dependencies=guard(require_plan(Plan.FREE)))
    async def plan_without_auth():
        return {"ok": True}

    @app.get("/test/optional")
    async def optional(context=Depends(optional_auth)):
        return {"user_id": context.user_id if context else None}

    return app


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_credentials(self, client, gated_app):
        response = await client.get("/test/whoami")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "missing_token",
            "message": "Authentication token is required",
        }

    @pytest.mark.asyncio
    async def test_invalid_bearer(self, client, gated_app):
        response = await client.get("/test/whoami", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_expired_bearer(self, client, gated_app, make_user):
        user = await make_user("a@b.com")
        issued_earlier = TokenService(gated_app.state.settings, clock=lambda: time.time() - 7200)
        expired = issued_earlier.issue({"user_id": user.id})

        response = await client.get("/test/whoami", headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, client, gated_app):
        token = gated_app.state.token_service.issue({"user_id": 9999, "role": "user", "plan": "free"})

        response = await client.get("/test/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_token_for_inactive_user(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com", is_active=False)

        response = await client.get("/test/whoami", headers=auth_headers(user))

        assert response.json()["error"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_bearer_auth(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com", plan=Plan.BASIC)

        response = await client.get("/test/whoami", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {"user_id": user.id, "auth_method": AUTH_METHOD_BEARER, "plan": "basic"}

    @pytest.mark.asyncio
    async def test_api_key_auth(self, client, gated_app, make_user):
        user = await make_user("a@b.com")

        response = await client.get("/test/whoami", headers={"X-API-Key": user.api_key})

        assert response.status_code == 200
        assert response.json()["auth_method"] == AUTH_METHOD_API_KEY

    @pytest.mark.asyncio
    async def test_unknown_api_key(self, client, gated_app):
        response = await client.get("/test/whoami", headers={"X-API-Key": "bm_live_" + "0" * 48})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_api_key"

    @pytest.mark.asyncio
    async def test_inactive_owner_api_key(self, client, gated_app, make_user):
        user = await make_user("a@b.com", is_active=False)

        response = await client.get("/test/whoami", headers={"X-API-Key": user.api_key})

        assert response.json()["error"] == "invalid_api_key"

    @pytest.mark.asyncio
    async def test_bearer_takes_precedence(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com")

        valid_bearer = await client.get(
            "/test/whoami",
            headers={**auth_headers(user), "X-API-Key": "bm_live_bogus"},
        )
        invalid_bearer = await client.get(
            "/test/whoami",
            headers={"Authorization": "Bearer junk", "X-API-Key": user.api_key},
        )

        assert valid_bearer.status_code == 200
        assert invalid_bearer.status_code == 401
        assert invalid_bearer.json()["error"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_entitlement_failure_is_denial(self, client, gated_app, make_user, auth_headers, monkeypatch):
        user = await make_user("a@b.com", plan=Plan.ENTERPRISE)

        async def failing_resolve(self, user, now=None):
            raise EntitlementEvaluationError(user.id, "Failed to load subscription")

        monkeypatch.setattr(EntitlementService, "resolve", failing_resolve)

        response = await client.get("/test/pro", headers=auth_headers(user))

        assert response.status_code == 500
        assert response.json()["error"] == "entitlement_eval_failed"

    @pytest.mark.asyncio
    async def test_optional_auth(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com")

        anonymous = await client.get("/test/optional")
        invalid = await client.get("/test/optional", headers={"Authorization": "Bearer junk"})
        authenticated = await client.get("/test/optional", headers=auth_headers(user))

        assert anonymous.json() == {"user_id": None}
        assert invalid.status_code == 200
        assert invalid.json() == {"user_id": None}
        assert authenticated.json() == {"user_id": user.id}

    @pytest.mark.asyncio
    async def test_optional_auth_unexpected_failure(
        self, client, gated_app, make_user, auth_headers, monkeypatch, caplog
    ):
        user = await make_user("a@b.com")

        async def broken_resolve(self, user, now=None):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(EntitlementService, "resolve", broken_resolve)

        with caplog.at_level("WARNING", logger="brandmind.api.dependencies.auth"):
            response = await client.get("/test/optional", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {"user_id": None}
        assert "Optional authentication failed unexpectedly" in caplog.text

    @pytest.mark.asyncio
    async def test_optional_auth_entitlement_failure(self, client, gated_app, make_user, auth_headers, monkeypatch):
        user = await make_user("a@b.com")

        async def failing_resolve(self, user, now=None):
            raise EntitlementEvaluationError(user.id, "Failed to load subscription")

        monkeypatch.setattr(EntitlementService, "resolve", failing_resolve)

        response = await client.get("/test/optional", headers=auth_headers(user))

        assert response.json() == {"user_id": None}


class TestGates:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "plan,status_code",
        [(Plan.FREE, 403), (Plan.BASIC, 403), (Plan.PRO, 200), (Plan.ENTERPRISE, 200)],
    )
    async def test_plan_gate(self, client, gated_app, make_user, auth_headers, plan, status_code):
        user = await make_user("a@b.com", plan=plan)

        response = await client.get("/test/pro", headers=auth_headers(user))

        assert response.status_code == status_code
        if status_code == 403:
            assert response.json()["error"] == "upgrade_required"
            assert response.json()["required_plan"] == ["pro"]

    @pytest.mark.asyncio
    async def test_plan_gate_without_subscription(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com", plan=None)

        response = await client.get("/test/pro", headers=auth_headers(user))

        assert response.status_code == 403
        assert response.json()["error"] == "no_subscription"

    @pytest.mark.asyncio
    async def test_unknown_required_plan(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com", plan=Plan.ENTERPRISE)

        response = await client.get("/test/platinum", headers=auth_headers(user))

        assert response.status_code == 403
        assert response.json()["error"] == "upgrade_required"

    @pytest.mark.asyncio
    async def test_token_plan_claim_is_ignored(self, client, gated_app, make_user):
        user = await make_user("a@b.com", plan=Plan.FREE)
        token = gated_app.state.token_service.issue(
            {"user_id": user.id, "email": user.email, "role": "superadmin", "plan": "enterprise"}
        )
        headers = {"Authorization": f"Bearer {token}"}

        plan_gate = await client.get("/test/pro", headers=headers)
        admin_gate = await client.get("/api/admin/dashboard", headers=headers)

        assert plan_gate.status_code == 403
        assert admin_gate.status_code == 403

    @pytest.mark.asyncio
    async def test_gate_without_authentication_fails_closed(self, client, gated_app, make_user, auth_headers):
        user = await make_user("a@b.com", plan=Plan.ENTERPRISE)

        response = await client.get("/test/unguarded-plan", headers=auth_headers(user))

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_unknown_role_rejected_at_construction(self):
        with pytest.raises(ValueError):
            require_role("owner")

    def test_guard_preserves_order(self):
        stages = guard(require_auth, require_role(Role.ADMIN))

        assert len(stages) == 2
        assert stages[0].dependency is require_auth


class TestActivationJourney:

    @pytest.mark.asyncio
    async def test_register_activate_login_generate(self, client, gated_app, completion_api, admin_headers):
        register = await client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "Abcdef12", "name": "Ada"},
        )
        assert register.status_code == 201
        user_id = register.json()["data"]["user_id"]

        pending = await client.post("/api/auth/login", json={"email": "a@b.com", "password": "Abcdef12"})
        assert pending.status_code == 403
        assert pending.json()["error"] == "account_inactive"

        activate = await client.post(
            f"/api/admin/users/{user_id}/activate",
            headers=admin_headers,
            json={"plan": "pro", "duration_days": 30},
        )
        assert activate.status_code == 200

        login = await client.post("/api/auth/login", json={"email": "a@b.com", "password": "Abcdef12"})
        assert login.status_code == 200
        tokens = login.json()["data"]["tokens"]
        assert gated_app.state.token_service.verify(tokens["access_token"])["plan"] == "pro"
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        ad = await client.post(
            "/api/content/generate/ad",
            headers=headers,
            json={
                "business_name": "Bean There",
                "product_service": "latte",
                "target_audience": "students",
                "goal": "foot traffic",
            },
        )
        assert ad.status_code == 200
        assert len(completion_api.requests) == 1

        white_label = await client.get("/test/white-label", headers=headers)
        assert white_label.status_code == 403
        assert white_label.json()["error"] == "feature_not_available"
        assert white_label.json()["current_plan"] == "pro"
