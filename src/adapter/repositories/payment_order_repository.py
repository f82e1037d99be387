"""SQLAlchemy implementation of PaymentOrderRepository

Status transitions are single conditional UPDATE statements whose rowcount
tells the caller whether it changed the row.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.payment_order import PaymentOrder, OrderStatus


class SqlAlchemyPaymentOrderRepository(PaymentOrderRepository):
    """
    SQLAlchemy implementation of PaymentOrderRepository

    Features:
    - Compare-and-swap status updates (WHERE status <> 'paid')
    - Unique external_order_id lookups
    - Reads refresh already-loaded instances (populate_existing)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: PaymentOrder) -> PaymentOrder:
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get_by_id(self, order_id: str) -> Optional[PaymentOrder]:
        stmt = (
            select(PaymentOrder)
            .where(PaymentOrder.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_external_order_id(self, external_order_id: str) -> Optional[PaymentOrder]:
        stmt = (
            select(PaymentOrder)
            .where(PaymentOrder.external_order_id == external_order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_paid_if_unpaid(
        self, order_id: str, external_payment_id: str, paid_at: datetime
    ) -> bool:
        """
        UPDATE payment_orders SET status='paid', ... WHERE id=:id AND status <> 'paid'

        Note:
            The affected-row count is the only evidence used; the row is not
            read beforehand.
        """
        stmt = (
            update(PaymentOrder)
            .where(PaymentOrder.id == order_id)
            .where(PaymentOrder.status != OrderStatus.PAID)
            .values(
                status=OrderStatus.PAID,
                external_payment_id=external_payment_id,
                paid_at=paid_at,
                updated_at=paid_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_failed_if_unpaid(
        self, external_order_id: str, external_payment_id: Optional[str], failed_at: datetime
    ) -> bool:
        values = {"status": OrderStatus.FAILED, "updated_at": failed_at}
        if external_payment_id:
            values["external_payment_id"] = external_payment_id

        stmt = (
            update(PaymentOrder)
            .where(PaymentOrder.external_order_id == external_order_id)
            .where(PaymentOrder.status != OrderStatus.PAID)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def list_paid_by_user(self, user_id: str, limit: int = 10) -> List[PaymentOrder]:
        stmt = (
            select(PaymentOrder)
            .where(PaymentOrder.user_id == user_id)
            .where(PaymentOrder.status == OrderStatus.PAID)
            .order_by(PaymentOrder.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
