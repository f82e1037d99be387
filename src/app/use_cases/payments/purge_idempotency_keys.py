"""PurgeIdempotencyKeys Use Case

Deletes idempotency keys whose retention window has passed.
"""

import logging
import time
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.idempotency_key_repository import IdempotencyKeyRepository
from .dtos import PurgeResultDTO

logger = logging.getLogger(__name__)


class PurgeIdempotencyKeys:
    """
    Use Case: Reclaim expired webhook idempotency keys

    Business Rules:
    1. Only keys with expires_at <= now are deleted
    2. Storage reclamation only: a redelivered event for a paid order is
       still stopped by the transition engine
    """

    def __init__(self, uow: UnitOfWork, key_repo: IdempotencyKeyRepository):
        self.uow = uow
        self.key_repo = key_repo

    async def execute(self, now: Optional[datetime] = None) -> Result[PurgeResultDTO]:
        start_time = time.time()
        now = now or datetime.utcnow()

        try:
            deleted = await self.key_repo.delete_expired(now)
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Idempotency key purge failed: {e}", exc_info=True)
            return Return.err(
                Error(
                    code="PURGE_FAILED",
                    message="Failed to purge idempotency keys",
                    reason=str(e),
                )
            )

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Purged {deleted} expired idempotency keys in {execution_time_ms}ms")

        return Return.ok(
            PurgeResultDTO(
                deleted_count=deleted,
                purged_before=now,
                execution_time_ms=execution_time_ms,
            )
        )
