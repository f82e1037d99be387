import itertools
import json
from typing import Optional

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  (registers tables on SQLModel.metadata)
from config import ApplicationConfig
from src.adapter.services.payment_provider import HttpPaymentProvider
from src.adapter.services.rate_limiter import RedisRateLimiter
from src.app.services.identity_provider import AuthenticatedUser, IdentityProvider
from src.app.services.rate_limiter import RateLimitBucket, RateLimitPolicy
from src.depends import get_identity_provider, get_payment_provider, get_rate_limiter, get_session

PAYMENT_KEY_SECRET = "test_key_secret"
PAYMENT_WEBHOOK_SECRET = "test_webhook_secret"


class IntegrationConfig(ApplicationConfig):
    API_PREFIX = ""
    PAYMENT_KEY_ID = "rzp_test_key"
    PAYMENT_KEY_SECRET = PAYMENT_KEY_SECRET
    PAYMENT_WEBHOOK_SECRET = PAYMENT_WEBHOOK_SECRET
    CREDIT_RETRY_DELAY_SECONDS = 0.0
    ENABLE_SENTRY = 0
    ENABLE_LOGGING_MIDDLEWARE = False


class StaticIdentityProvider(IdentityProvider):
    """Accepts tokens of the form token_<user id>"""

    async def get_user(self, token: str) -> Optional[AuthenticatedUser]:
        if not token.startswith("token_"):
            return None
        user_id = token[len("token_"):]
        return AuthenticatedUser(id=user_id, email=f"{user_id}@example.com", name="Test User")


def provider_transport():
    """Fake provider API: every POST /v1/orders returns a new order id"""
    counter = itertools.count(1)

    def handler(request: httpx.Request):
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": f"order_test_{next(counter)}",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
            },
        )

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """File-backed SQLite so that separate sessions see each other's commits"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'payments.db'}", echo=False, future=True
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Test client; every request gets its own session, as in production"""
    from src.api.app import create_app

    app = create_app(IntegrationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_identity_provider] = StaticIdentityProvider
    transport = provider_transport()
    app.dependency_overrides[get_payment_provider] = lambda: HttpPaymentProvider(
        base_url="https://provider.test",
        key_id=IntegrationConfig.PAYMENT_KEY_ID,
        key_secret=IntegrationConfig.PAYMENT_KEY_SECRET,
        transport=transport,
    )
    app.dependency_overrides[get_rate_limiter] = lambda: RedisRateLimiter(
        None,
        {
            RateLimitBucket.ORDER: RateLimitPolicy(requests=10, window_seconds=60),
            RateLimitBucket.GENERATE: RateLimitPolicy(requests=20, window_seconds=60),
        },
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
