import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


def _get(key, default=None):
    """Environment variables win over env.yaml; values are parsed as YAML scalars."""
    if key in os.environ:
        return yaml.safe_load(os.environ[key])
    return data.get(key, default)


DEFAULT_PRICING_PLANS = {
    "essentials": {
        "name": "Essentials",
        "price": 12900,  # 129 INR in paise
        "credits": 20,
        "currency": "INR",
    },
    "ultimate": {
        "name": "Ultimate",
        "price": 74900,  # 749 INR in paise
        "credits": 135,
        "currency": "INR",
    },
}


class ApplicationConfig:
    DB_URI = _get("DB_URI", "sqlite+aiosqlite:///./test.db")
    REDIS_URL = _get("REDIS_URL", "")
    API_PREFIX = _get("API_PREFIX", "/api")
    API_PORT = _get("API_PORT", 8000)
    API_HOST = _get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = _get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = _get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = _get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(_get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = _get("ENABLE_SENTRY", 0)
    DSN_SENTRY = _get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = _get("SENTRY_ENVIRONMENT", "dev")

    # Payment provider
    PAYMENT_KEY_ID = _get("PAYMENT_KEY_ID", "")
    PAYMENT_KEY_SECRET = _get("PAYMENT_KEY_SECRET", "")  # HMAC secret for client confirmations
    PAYMENT_WEBHOOK_SECRET = _get("PAYMENT_WEBHOOK_SECRET", "")
    PAYMENT_API_BASE_URL = _get("PAYMENT_API_BASE_URL", "https://api.razorpay.com")
    PAYMENT_API_TIMEOUT_SECONDS = _get("PAYMENT_API_TIMEOUT_SECONDS", 10.0)

    # Identity provider (bearer token validation)
    AUTH_API_URL = _get("AUTH_API_URL", "")
    AUTH_API_KEY = _get("AUTH_API_KEY", "")
    AUTH_API_TIMEOUT_SECONDS = _get("AUTH_API_TIMEOUT_SECONDS", 5.0)

    # Rate limiting (fails open when REDIS_URL is empty or Redis is down)
    RATE_LIMIT_ORDER_REQUESTS = _get("RATE_LIMIT_ORDER_REQUESTS", 10)
    RATE_LIMIT_GENERATE_REQUESTS = _get("RATE_LIMIT_GENERATE_REQUESTS", 20)
    RATE_LIMIT_WINDOW_SECONDS = _get("RATE_LIMIT_WINDOW_SECONDS", 60)
    RATE_LIMIT_TIMEOUT_SECONDS = _get("RATE_LIMIT_TIMEOUT_SECONDS", 1.0)

    # Credit grant retries (fixed delay by default)
    CREDIT_RETRY_ATTEMPTS = _get("CREDIT_RETRY_ATTEMPTS", 2)
    CREDIT_RETRY_DELAY_SECONDS = _get("CREDIT_RETRY_DELAY_SECONDS", 0.5)
    CREDIT_RETRY_BACKOFF_MULTIPLIER = _get("CREDIT_RETRY_BACKOFF_MULTIPLIER", 1.0)
    CREDIT_GRANT_TIMEOUT_SECONDS = _get("CREDIT_GRANT_TIMEOUT_SECONDS", 5.0)

    # Webhook idempotency keys
    IDEMPOTENCY_KEY_TTL_DAYS = _get("IDEMPOTENCY_KEY_TTL_DAYS", 7)
    IDEMPOTENCY_PURGE_ENABLED = bool(_get("IDEMPOTENCY_PURGE_ENABLED", True))
    IDEMPOTENCY_PURGE_INTERVAL_SECONDS = _get("IDEMPOTENCY_PURGE_INTERVAL_SECONDS", 3600)

    # Alerts for paid orders that need manual crediting (logged always, POSTed when set)
    RECONCILIATION_ALERT_WEBHOOK = _get("RECONCILIATION_ALERT_WEBHOOK", None)

    PRICING_PLANS = _get("PRICING_PLANS", DEFAULT_PRICING_PLANS)
