"""Idempotency Guard

Deduplicates webhook deliveries across retries and concurrent instances.
The key row is inserted before any processing; the unique constraint on
idempotency_keys.key decides the single first processor.
"""

import hashlib
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from sqlalchemy.exc import IntegrityError
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.idempotency_key_repository import IdempotencyKeyRepository
from src.domain.idempotency_key import IdempotencyKey

logger = logging.getLogger(__name__)


class GuardOutcome(str, Enum):
    ACQUIRED = "acquired"                        # This caller is the sole processor
    ALREADY_PROCESSED = "already_processed"      # Key existed (confirmed by lookup)
    CONCURRENT_DUPLICATE = "concurrent_duplicate"  # Lost the insert race, key not visible yet

    @property
    def is_duplicate(self) -> bool:
        return self is not GuardOutcome.ACQUIRED


class IdempotencyGuard:
    """
    Insert-first idempotency for webhook events

    Business Rules:
    1. Insert the key before doing any work (no check-then-insert window)
    2. A uniqueness violation means another delivery owns the event
    3. Expiry only reclaims storage; the order status stays authoritative
    """

    def __init__(
        self,
        uow: UnitOfWork,
        key_repo: IdempotencyKeyRepository,
        ttl_days: int = 7,
    ):
        self.uow = uow
        self.key_repo = key_repo
        self.ttl = timedelta(days=ttl_days)

    @staticmethod
    def derive_key(event_type: str, entity_id: Optional[str], raw_body: bytes = b"") -> str:
        """
        Build the event key from event type and provider entity id

        Payloads without an entity id fall back to a digest of the body so
        that byte-identical redeliveries still collide.
        """
        if not entity_id:
            entity_id = "body_" + hashlib.sha256(raw_body).hexdigest()[:32]
        return f"webhook_{event_type}_{entity_id}"

    async def acquire(self, key: str) -> GuardOutcome:
        """
        Claim ``key`` for this caller

        Raises:
            Any non-integrity database error (the delivery should be retried)
        """
        now = datetime.utcnow()
        entry = IdempotencyKey(key=key, created_at=now, expires_at=now + self.ttl)

        try:
            await self.key_repo.insert(entry)
            await self.uow.commit()
            return GuardOutcome.ACQUIRED
        except IntegrityError:
            await self.uow.rollback()

        existing = await self.key_repo.get_by_key(key)
        if existing:
            logger.info(f"Duplicate webhook event, skipping: {key}")
            return GuardOutcome.ALREADY_PROCESSED

        logger.info(f"Concurrent webhook processing detected, skipping: {key}")
        return GuardOutcome.CONCURRENT_DUPLICATE

    async def release(self, key: str) -> bool:
        """
        Drop a claimed key so the provider's next retry can reprocess the event

        Only used when processing failed for infrastructure reasons after the
        key was acquired.
        """
        try:
            deleted = await self.key_repo.delete_by_key(key)
            await self.uow.commit()
            return deleted
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to release idempotency key {key}: {e}")
            return False
