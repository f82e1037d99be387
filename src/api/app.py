import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from libs.context import request_id_var, new_request_id
from src.api.error import register_error_handlers
from src.api.routes import health, payments
from src.depends import get_rate_limiter, get_settings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamps every record with the current request id ('-' outside requests)"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


_log_handler = logging.StreamHandler()
_log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
_log_handler.addFilter(RequestIdFilter())


def configure_logging(level: str):
    root = logging.getLogger()
    if _log_handler not in root.handlers:
        root.addHandler(_log_handler)
    root.setLevel(str(level).upper())


def init_sentry(config):
    if not (config.ENABLE_SENTRY and config.DSN_SENTRY):
        return
    import sentry_sdk

    sentry_sdk.init(
        dsn=config.DSN_SENTRY,
        environment=config.SENTRY_ENVIRONMENT,
        traces_sample_rate=0.0,
    )
    logger.info(f"Sentry enabled ({config.SENTRY_ENVIRONMENT})")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_rate_limiter.cache_info().currsize:
        await get_rate_limiter().close()


def create_app(config) -> FastAPI:
    configure_logging(config.LOG_LEVEL)
    init_sentry(config)

    app = FastAPI(
        title="Payment Reconciliation Service",
        description="Order issuing, payment confirmation and exactly-once credit grants",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        token = request_id_var.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        if config.ENABLE_LOGGING_MIDDLEWARE:
            duration = (time.perf_counter() - start) * 1000
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} "
                f"{duration:.1f}ms request_id={request_id}"
            )
        return response

    register_error_handlers(app)

    app.include_router(payments.router, prefix=config.API_PREFIX)
    app.include_router(health.router)

    return app
