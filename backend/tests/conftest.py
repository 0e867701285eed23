"""
Shared fixtures.

Every test app gets its own in-memory SQLite database, in-process
key-value store and a mocked upstream completion API.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from cryptography.fernet import Fernet

from brandmind.config.settings import Settings
from brandmind.credentials.keys import generate_api_key
from brandmind.credentials.passwords import hash_password
from brandmind.database.session import create_tables
from brandmind.entitlements.catalog import get_plan_definition
from brandmind.entitlements.models import ActivationMethod, Plan, Role, SubscriptionStatus
from brandmind.main import create_app
from brandmind.models.subscription import Subscription
from brandmind.models.user import User
from brandmind.services.key_value_store import InMemoryKeyValueStore

TEST_SECRET = "test-signing-secret-0123456789abcdef"
ADMIN_PASSWORD = "AdminPass1"
USER_PASSWORD = "Abcdef12"


class FakeCompletionAPI:
    """Records upstream calls and answers with a canned completion."""

    def __init__(self):
        self.requests: list[dict] = []
        self.status_code = 200
        self.text = "Content: Fresh coffee every morning\nHashtags: #coffee #morning"
        self.total_tokens = 42

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(
            {
                "authorization": request.headers.get("Authorization"),
                "body": json.loads(request.content),
            }
        )
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="upstream failure")
        return httpx.Response(
            200,
            json={
                "id": "cmpl-1",
                "model": "test-model",
                "usage": {"prompt_tokens": 10, "completion_tokens": 32, "total_tokens": self.total_tokens},
                "choices": [{"index": 0, "message": {"role": "assistant", "content": self.text}}],
            },
        )


@pytest.fixture
def settings():
    return Settings(
        jwt_secret=TEST_SECRET,
        database_url="sqlite+aiosqlite:///:memory:",
        encryption_key=Fernet.generate_key().decode(),
        master_completion_api_key="master-key",
        completion_api_url="https://completions.test/chat/completions",
        completion_model="test-model",
    )


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def completion_api():
    return FakeCompletionAPI()


@pytest_asyncio.fixture
async def app(settings, kv_store, completion_api):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(completion_api.handler))
    application = create_app(settings=settings, kv_store=kv_store, http_client=http_client)
    await create_tables(application.state.engine)
    yield application
    await http_client.aclose()
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def session(app):
    async with app.state.session_factory() as s:
        yield s


@pytest.fixture
def make_user(session):
    """Factory inserting a user, optionally with an active subscription on ``plan``."""

    async def _make_user(
        email: str,
        password: str = USER_PASSWORD,
        role: Role = Role.USER,
        is_active: bool = True,
        plan: Plan | None = Plan.FREE,
        days: int = 30,
    ) -> User:
        user = User(
            email=email,
            password_hash=hash_password(password),
            name=email.split("@")[0],
            role=role,
            is_active=is_active,
            api_key=generate_api_key(),
        )
        session.add(user)
        await session.flush()

        if plan is not None:
            definition = get_plan_definition(plan)
            now = datetime.now(timezone.utc)
            session.add(
                Subscription(
                    user_id=user.id,
                    plan=plan,
                    status=SubscriptionStatus.ACTIVE,
                    features=list(definition.features),
                    limits=definition.limits.to_dict(),
                    price=definition.price,
                    activation_method=ActivationMethod.MANUAL,
                    start_date=now,
                    end_date=now + timedelta(days=days),
                )
            )
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers(app):
    """Build an Authorization header with a fresh access token for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        token = app.state.token_service.issue(
            {
                "user_id": user.id,
                "email": user.email,
                "role": user.role.value,
                "plan": Plan.FREE.value,
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest_asyncio.fixture
async def admin_user(make_user):
    return await make_user("admin@brandmind.io", ADMIN_PASSWORD, role=Role.ADMIN, plan=None)


@pytest.fixture
def admin_headers(auth_headers, admin_user):
    return auth_headers(admin_user)
