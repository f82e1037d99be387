"""Ledger Transition Engine

Moves an order to paid exactly once. The whole guarantee rests on one
conditional write (status <> paid) and the affected-row count it reports;
the row is read beforehand only to snapshot what the credit grant needs,
never to decide the outcome.

State machine:
    pending --confirm--> paid
    pending --fail-->    failed
    failed  --confirm--> paid
    paid    --confirm--> paid   (no-op, caller is not the winner)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from src.app.errors import LedgerTransitionError, OrderNotFoundError
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.payment_order import PaymentOrder, OrderStatus

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    won: bool
    order: PaymentOrder


def _paid_snapshot(order: PaymentOrder, external_payment_id: str, paid_at: datetime) -> PaymentOrder:
    """Detached copy of ``order`` as the winning update wrote it"""
    return PaymentOrder(
        id=order.id,
        user_id=order.user_id,
        plan_id=order.plan_id,
        plan_name=order.plan_name,
        amount=order.amount,
        currency=order.currency,
        credits_purchased=order.credits_purchased,
        external_order_id=order.external_order_id,
        external_payment_id=external_payment_id,
        status=OrderStatus.PAID,
        created_at=order.created_at,
        paid_at=paid_at,
        updated_at=paid_at,
    )


class LedgerTransitionEngine:
    def __init__(self, uow: UnitOfWork, order_repo: PaymentOrderRepository):
        self.uow = uow
        self.order_repo = order_repo

    async def confirm(self, order_id: str, external_payment_id: str) -> TransitionResult:
        """
        Transition ``order_id`` to paid

        Returns:
            TransitionResult with won=True only for the single caller whose
            update changed the row. Winners get a snapshot of the paid order
            built from the pre-update read, so nothing after the commit can
            keep them from crediting. Losers get the order as read before
            their update attempt.

        Raises:
            LedgerTransitionError: The order could not be read or the
                conditional update could not be applied
            OrderNotFoundError: No order with this id exists
        """
        try:
            order = await self.order_repo.get_by_id(order_id)
        except Exception as e:
            logger.error(f"Order {order_id} could not be read before transition: {e}")
            raise LedgerTransitionError(f"Failed to load order {order_id}") from e

        if order is None:
            raise OrderNotFoundError(order_id)

        now = datetime.utcnow()
        # Snapshot before the write; a failed commit rolls back and expires the instance
        paid = _paid_snapshot(order, external_payment_id, now)
        try:
            won = await self.order_repo.mark_paid_if_unpaid(order_id, external_payment_id, now)
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Ledger transition failed for order {order_id}: {e}")
            raise LedgerTransitionError(f"Failed to mark order {order_id} as paid") from e

        if won:
            logger.info(f"Order {order_id} transitioned to paid (payment {external_payment_id})")
            return TransitionResult(won=True, order=paid)

        logger.info(f"Order {order_id} already paid, transition skipped (race prevented)")
        return TransitionResult(won=False, order=order)

    async def fail(self, external_order_id: str, external_payment_id: Optional[str]) -> bool:
        """
        Record a provider failure unless the order is already paid

        Returns:
            True if the order was marked failed
        """
        now = datetime.utcnow()
        try:
            changed = await self.order_repo.mark_failed_if_unpaid(
                external_order_id, external_payment_id, now
            )
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to mark order {external_order_id} as failed: {e}")
            raise LedgerTransitionError(
                f"Failed to mark order {external_order_id} as failed"
            ) from e

        if not changed:
            logger.info(f"Failure for {external_order_id} ignored (order missing or already paid)")
        return changed
