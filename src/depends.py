from functools import lru_cache
from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from libs.result import Error
from src.app.errors import IdentityProviderError
from src.app.services.identity_provider import AuthenticatedUser, IdentityProvider
from src.app.services.notification_service import NotificationService
from src.app.services.payment_provider import PaymentProvider
from src.app.services.rate_limiter import RateLimiter, RateLimitBucket, RateLimitPolicy
from src.adapter.services.identity_provider import HttpIdentityProvider
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.payment_provider import HttpPaymentProvider
from src.adapter.services.rate_limiter import RedisRateLimiter, create_redis_client
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_settings():
    return ApplicationConfig


@lru_cache
def get_rate_limiter() -> RateLimiter:
    """One Redis connection pool per process; None URL means fail-open limiter"""
    redis = create_redis_client(
        ApplicationConfig.REDIS_URL, ApplicationConfig.RATE_LIMIT_TIMEOUT_SECONDS
    )
    window = ApplicationConfig.RATE_LIMIT_WINDOW_SECONDS
    policies = {
        RateLimitBucket.ORDER: RateLimitPolicy(
            requests=ApplicationConfig.RATE_LIMIT_ORDER_REQUESTS, window_seconds=window
        ),
        RateLimitBucket.GENERATE: RateLimitPolicy(
            requests=ApplicationConfig.RATE_LIMIT_GENERATE_REQUESTS, window_seconds=window
        ),
    }
    return RedisRateLimiter(
        redis, policies, timeout=ApplicationConfig.RATE_LIMIT_TIMEOUT_SECONDS
    )


def get_payment_provider() -> PaymentProvider:
    return HttpPaymentProvider(
        base_url=ApplicationConfig.PAYMENT_API_BASE_URL,
        key_id=ApplicationConfig.PAYMENT_KEY_ID,
        key_secret=ApplicationConfig.PAYMENT_KEY_SECRET,
        timeout=ApplicationConfig.PAYMENT_API_TIMEOUT_SECONDS,
    )


def get_identity_provider() -> IdentityProvider:
    return HttpIdentityProvider(
        base_url=ApplicationConfig.AUTH_API_URL,
        api_key=ApplicationConfig.AUTH_API_KEY,
        timeout=ApplicationConfig.AUTH_API_TIMEOUT_SECONDS,
    )


@lru_cache
def get_notification_service() -> NotificationService:
    return create_notification_service(ApplicationConfig.RECONCILIATION_ALERT_WEBHOOK)


def _unauthenticated(message: str) -> ClientError:
    return ClientError(
        Error(code="UNAUTHENTICATED", message=message),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> AuthenticatedUser:
    """Resolve the bearer token to a user; every failure is a 401"""
    if not authorization:
        raise _unauthenticated("Unauthorized")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthenticated("Unauthorized")

    try:
        user = await identity_provider.get_user(token.strip())
    except IdentityProviderError:
        raise _unauthenticated("Invalid token")

    if user is None:
        raise _unauthenticated("Invalid token")
    return user
