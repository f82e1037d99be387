"""SQLAlchemy implementation of AuditLogRepository"""

from typing import List
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.audit_log_repository import AuditLogRepository
from src.domain.audit_log import AuditLogEntry


class SqlAlchemyAuditLogRepository(AuditLogRepository):
    """
    SQLAlchemy implementation of AuditLogRepository

    Entries are only ever added; nothing here updates or deletes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_by_order(self, order_id: str) -> List[AuditLogEntry]:
        stmt = (
            select(AuditLogEntry)
            .where(AuditLogEntry.order_id == order_id)
            .order_by(AuditLogEntry.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_manual_fix_required(self, limit: int = 100) -> List[AuditLogEntry]:
        stmt = (
            select(AuditLogEntry)
            .where(AuditLogEntry.manual_fix_required == True)  # noqa: E712
            .order_by(AuditLogEntry.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
