"""SQLAlchemy implementation of IdempotencyKeyRepository

The unique constraint on ``key`` is what makes insert-first deduplication
safe across instances.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.idempotency_key_repository import IdempotencyKeyRepository
from src.domain.idempotency_key import IdempotencyKey


class SqlAlchemyIdempotencyKeyRepository(IdempotencyKeyRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, key: IdempotencyKey) -> IdempotencyKey:
        """
        Raises:
            IntegrityError: If the key already exists (raised at flush)
        """
        self.session.add(key)
        await self.session.flush()
        return key

    async def get_by_key(self, key: str) -> Optional[IdempotencyKey]:
        stmt = select(IdempotencyKey).where(IdempotencyKey.key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_by_key(self, key: str) -> bool:
        stmt = delete(IdempotencyKey).where(IdempotencyKey.key == key)
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(IdempotencyKey).where(IdempotencyKey.expires_at <= now)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
