"""Rate Limiter Interface

Per-identity throttling for order creation and generation-adjacent calls.
Implementations must fail open: infrastructure trouble yields an allowed,
degraded result, never a rejection.

The generate bucket is enforced by the external generation service; this
service only configures and reports it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class RateLimitBucket(str, Enum):
    ORDER = "order"
    GENERATE = "generate"


class RateLimitPolicy(BaseModel):
    requests: int = Field(..., gt=0)
    window_seconds: int = Field(..., gt=0)


class RateLimitResult(BaseModel):
    allowed: bool
    limit: int
    remaining: int
    reset_at: Optional[datetime] = None
    degraded: bool = False


class RateLimiter(ABC):

    @abstractmethod
    async def check(self, bucket: RateLimitBucket, identity: str) -> RateLimitResult:
        """
        Count one request for ``identity`` in ``bucket``

        Returns:
            RateLimitResult; ``degraded=True`` means the store was unavailable
            and the request was allowed without counting
        """
        pass

    async def ping(self) -> bool:
        """Health probe of the backing store (True when reachable)"""
        return False

    @property
    def is_configured(self) -> bool:
        return False
