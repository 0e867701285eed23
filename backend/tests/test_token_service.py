"""
Tests for access and refresh tokens.

Verifies:
- Issued tokens verify and carry the expected claims
- Expiry is decided by the injected clock
- Any change to header, payload or signature is rejected
- Refresh tokens are single-valid per user and revocable
"""

from types import SimpleNamespace

import jwt
import pytest

from brandmind.config.settings import Settings
from brandmind.credentials.signing import sign
from brandmind.entitlements.models import Plan, Role
from brandmind.services.key_value_store import InMemoryKeyValueStore
from brandmind.services.token_service import TokenService
from brandmind.services.token_store import RefreshTokenStore, refresh_token_key

SECRET = "unit-test-signing-secret-0123456789"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_service(clock):
    return TokenService(Settings(jwt_secret=SECRET, access_token_ttl_seconds=3600), clock=clock)


def _claims(**overrides):
    claims = {"user_id": 7, "email": "a@b.com", "role": "user", "plan": "pro"}
    claims.update(overrides)
    return claims


class TestAccessTokens:

    def test_round_trip(self, token_service, clock):
        token = token_service.issue(_claims())

        claims = token_service.verify(token)

        assert claims["user_id"] == 7
        assert claims["email"] == "a@b.com"
        assert claims["role"] == "user"
        assert claims["plan"] == "pro"
        assert claims["iat"] == int(clock.now)
        assert claims["exp"] == int(clock.now) + 3600

    def test_header_is_hs256_jwt(self, token_service):
        header = jwt.get_unverified_header(token_service.issue(_claims()))

        assert header == {"alg": "HS256", "typ": "JWT"}

    def test_signature_covers_header_and_payload(self, token_service):
        token = token_service.issue(_claims())
        header, payload, signature = token.split(".")

        assert signature == sign(f"{header}.{payload}", SECRET)

    def test_issue_overrides_caller_timestamps(self, token_service, clock):
        claims = token_service.verify(token_service.issue(_claims(iat=1, exp=2)))

        assert claims["iat"] == int(clock.now)
        assert claims["exp"] == int(clock.now) + 3600

    def test_valid_until_expiry(self, token_service, clock):
        token = token_service.issue(_claims())

        clock.now += 3599
        assert token_service.verify(token) is not None

        clock.now += 1
        assert token_service.verify(token) is None

    def test_tampered_signature_rejected(self, token_service):
        token = token_service.issue(_claims())
        header, payload, signature = token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]

        assert token_service.verify(f"{header}.{payload}.{flipped}") is None

    def test_tampered_payload_rejected(self, token_service):
        token = token_service.issue(_claims())
        forged = token_service.issue(_claims(role="superadmin"))
        header, _, signature = token.split(".")
        _, forged_payload, _ = forged.split(".")

        assert token_service.verify(f"{header}.{forged_payload}.{signature}") is None

    def test_other_secret_rejected(self, token_service, clock):
        other = TokenService(Settings(jwt_secret="another-signing-secret-0123456789ab"), clock=clock)

        assert token_service.verify(other.issue(_claims())) is None

    def test_missing_exp_rejected(self, token_service, clock):
        token = jwt.encode({"user_id": 7, "iat": int(clock.now)}, SECRET, algorithm="HS256")

        assert token_service.verify(token) is None

    @pytest.mark.parametrize(
        "token",
        [None, "", "abc", "a.b", "a.b.c", "a.b.c.d", "not.a.token"],
    )
    def test_malformed_tokens_rejected(self, token_service, token):
        assert token_service.verify(token) is None


class TestRefreshTokenStore:

    @pytest.fixture
    def kv(self, clock):
        return InMemoryKeyValueStore(clock=clock)

    @pytest.fixture
    def store(self, kv):
        return RefreshTokenStore(kv, SECRET, ttl_seconds=100)

    @pytest.mark.asyncio
    async def test_issue_and_verify(self, store):
        token = await store.issue(7)

        assert token.startswith("rt_7_")
        assert await store.verify(token) == 7

    @pytest.mark.asyncio
    async def test_raw_token_not_persisted(self, store, kv):
        token = await store.issue(7)

        stored = await kv.get(refresh_token_key(7))
        assert stored is not None
        assert stored != token

    @pytest.mark.asyncio
    async def test_new_token_supersedes_previous(self, store):
        first = await store.issue(7)
        second = await store.issue(7)

        assert await store.verify(first) is None
        assert await store.verify(second) == 7

    @pytest.mark.asyncio
    async def test_revoke(self, store):
        token = await store.issue(7)

        await store.revoke(7)

        assert await store.verify(token) is None

    @pytest.mark.asyncio
    async def test_forged_token_for_same_user_rejected(self, store):
        await store.issue(7)

        assert await store.verify("rt_7_" + "0" * 64) is None

    @pytest.mark.asyncio
    async def test_token_of_other_user_prefix_rejected(self, store):
        token = await store.issue(7)
        await store.issue(8)

        assert await store.verify(token.replace("rt_7_", "rt_8_", 1)) is None

    @pytest.mark.asyncio
    async def test_expires_with_ttl(self, store, clock):
        token = await store.issue(7)

        clock.now += 101

        assert await store.verify(token) is None


class TestIssueForUser:

    @pytest.mark.asyncio
    async def test_issues_pair_with_free_plan_when_unsubscribed(self, clock):
        store = RefreshTokenStore(InMemoryKeyValueStore(clock=clock), SECRET, ttl_seconds=100)
        service = TokenService(Settings(jwt_secret=SECRET), refresh_store=store, clock=clock)
        user = SimpleNamespace(id=5, email="admin@b.com", role=Role.ADMIN)

        pair = await service.issue_for_user(user, None)

        claims = service.verify(pair.access_token)
        assert claims["plan"] == "free"
        assert claims["role"] == "admin"
        assert pair.expires_in == 3600
        assert pair.to_dict()["token_type"] == "Bearer"
        assert await store.verify(pair.refresh_token) == 5

    @pytest.mark.asyncio
    async def test_plan_claim_follows_subscription(self, clock):
        store = RefreshTokenStore(InMemoryKeyValueStore(clock=clock), SECRET, ttl_seconds=100)
        service = TokenService(Settings(jwt_secret=SECRET), refresh_store=store, clock=clock)
        user = SimpleNamespace(id=5, email="a@b.com", role=Role.USER)

        pair = await service.issue_for_user(user, Plan.PRO)

        assert service.verify(pair.access_token)["plan"] == "pro"

    @pytest.mark.asyncio
    async def test_requires_refresh_store(self, token_service):
        user = SimpleNamespace(id=5, email="a@b.com", role=Role.USER)

        with pytest.raises(RuntimeError):
            await token_service.issue_for_user(user, None)
