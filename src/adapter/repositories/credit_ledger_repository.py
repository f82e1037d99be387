"""SQLAlchemy implementation of CreditLedgerRepository

Balance changes are issued as ``balance = balance + :amount`` so concurrent
grants for the same user cannot overwrite each other.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.domain.credit_ledger import CreditLedger


class SqlAlchemyCreditLedgerRepository(CreditLedgerRepository):
    """
    SQLAlchemy implementation of CreditLedgerRepository

    Features:
    - Atomic increments (no read-modify-write)
    - Lazy ledger creation guarded by the unique user_id constraint
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: str) -> Optional[CreditLedger]:
        stmt = (
            select(CreditLedger)
            .where(CreditLedger.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment_balance(self, user_id: str, amount: int) -> None:
        """
        Add ``amount`` to the user's balance in one statement

        Note:
            When no ledger exists yet a new row is inserted with the amount as
            its balance. Two first-time grants racing here make one insert
            fail with IntegrityError; the caller rolls back and retries, and
            the retry takes the UPDATE path.
        """
        now = datetime.utcnow()
        stmt = (
            update(CreditLedger)
            .where(CreditLedger.user_id == user_id)
            .values(balance=CreditLedger.balance + amount, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount:
            return

        self.session.add(
            CreditLedger(user_id=user_id, balance=amount, created_at=now, updated_at=now)
        )
        await self.session.flush()
