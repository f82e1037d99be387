"""Idempotency Key Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from src.domain.idempotency_key import IdempotencyKey


class IdempotencyKeyRepository(ABC):

    @abstractmethod
    async def insert(self, key: IdempotencyKey) -> IdempotencyKey:
        """
        Insert a new key

        Raises:
            IntegrityError: If the key already exists
        """
        pass

    @abstractmethod
    async def get_by_key(self, key: str) -> Optional[IdempotencyKey]:
        pass

    @abstractmethod
    async def delete_by_key(self, key: str) -> bool:
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete keys with expires_at <= now and return how many were removed"""
        pass
