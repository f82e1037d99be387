from .unit_of_work import SqlAlchemyUnitOfWork
from .notification_service import (
    LoggingNotificationService,
    WebhookNotificationService,
    CompositeNotificationService,
    create_notification_service,
)
from .rate_limiter import RedisRateLimiter, create_redis_client
from .payment_provider import HttpPaymentProvider
from .identity_provider import HttpIdentityProvider

__all__ = [
    "SqlAlchemyUnitOfWork",
    "LoggingNotificationService",
    "WebhookNotificationService",
    "CompositeNotificationService",
    "create_notification_service",
    "RedisRateLimiter",
    "create_redis_client",
    "HttpPaymentProvider",
    "HttpIdentityProvider",
]
