"""Health check route

Reports the datastore and the rate-limit store. Only a database outage makes
the service unhealthy; a missing Redis just degrades rate limiting.
"""

import logging
import time
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.rate_limiter import RateLimiter
from src.depends import get_rate_limiter, get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


async def _check_database(session: AsyncSession) -> dict:
    start = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "up", "latency_ms": _elapsed_ms(start)}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "down", "error": str(e)}


async def _check_redis(rate_limiter: RateLimiter) -> dict:
    if not rate_limiter.is_configured:
        return {"status": "not_configured"}
    start = time.perf_counter()
    if await rate_limiter.ping():
        return {"status": "up", "latency_ms": _elapsed_ms(start)}
    return {"status": "down"}


@router.get("/health")
async def health(
    session: AsyncSession = Depends(get_session),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    database = await _check_database(session)
    redis = await _check_redis(rate_limiter)

    if database["status"] != "up":
        overall = "unhealthy"
    elif redis["status"] != "up":
        overall = "degraded"
    else:
        overall = "healthy"

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE if overall == "unhealthy" else status.HTTP_200_OK,
        content={"status": overall, "services": {"database": database, "redis": redis}},
    )
