"""Redis-backed Rate Limiter

Fixed-window counters in Redis (INCR + EXPIRE in one pipeline), shared by
every API instance. Fails open: a missing Redis URL, a Redis error or a slow
Redis all produce an allowed, degraded result.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Dict, Optional
from redis.asyncio import Redis
from src.app.services.rate_limiter import (
    RateLimiter,
    RateLimitBucket,
    RateLimitPolicy,
    RateLimitResult,
)

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: Optional[str], timeout: float = 1.0) -> Optional[Redis]:
    """
    Build a Redis client, or None when no URL is configured

    Connection is lazy, so an unreachable Redis only shows up on first use.
    """
    if not redis_url:
        logger.warning("Redis URL missing. Rate limiting is disabled (allow mode).")
        return None

    try:
        return Redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )
    except ValueError as e:
        logger.error(f"Invalid Redis URL, rate limiting disabled: {e}")
        return None


class RedisRateLimiter(RateLimiter):
    """
    Fixed-window rate limiter

    Key layout: ratelimit:<bucket>:<identity>:<window index>
    """

    def __init__(
        self,
        redis: Optional[Redis],
        policies: Dict[RateLimitBucket, RateLimitPolicy],
        timeout: float = 1.0,
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis
        self.policies = policies
        self.timeout = timeout
        self._clock = clock

    @property
    def is_configured(self) -> bool:
        return self.redis is not None

    def _degraded(self, policy: RateLimitPolicy) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=policy.requests,
            remaining=policy.requests,
            reset_at=None,
            degraded=True,
        )

    async def check(self, bucket: RateLimitBucket, identity: str) -> RateLimitResult:
        policy = self.policies[bucket]

        if self.redis is None:
            return self._degraded(policy)

        now = self._clock()
        window_index = int(now // policy.window_seconds)
        reset_epoch = (window_index + 1) * policy.window_seconds
        key = f"ratelimit:{bucket.value}:{identity}:{window_index}"

        try:
            count = await asyncio.wait_for(
                self._increment(key, policy.window_seconds), timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Rate limit check failed (failing open) for {bucket.value}: {e!r}")
            return self._degraded(policy)

        return RateLimitResult(
            allowed=count <= policy.requests,
            limit=policy.requests,
            remaining=max(0, policy.requests - count),
            reset_at=datetime.utcfromtimestamp(reset_epoch),
            degraded=False,
        )

    async def _increment(self, key: str, window_seconds: int) -> int:
        pipeline = self.redis.pipeline(transaction=True)
        pipeline.incr(key)
        pipeline.expire(key, window_seconds)
        count, _ = await pipeline.execute()
        return int(count)

    async def ping(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await asyncio.wait_for(self.redis.ping(), timeout=self.timeout))
        except Exception as e:
            logger.error(f"Redis ping failed: {e!r}")
            return False

    async def close(self):
        if self.redis is not None:
            await self.redis.aclose()
