"""Audit Log Repository Interface

Append-only: there is deliberately no update or delete.
"""

from abc import ABC, abstractmethod
from typing import List
from src.domain.audit_log import AuditLogEntry


class AuditLogRepository(ABC):

    @abstractmethod
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        pass

    @abstractmethod
    async def list_by_order(self, order_id: str) -> List[AuditLogEntry]:
        pass

    @abstractmethod
    async def list_manual_fix_required(self, limit: int = 100) -> List[AuditLogEntry]:
        pass
