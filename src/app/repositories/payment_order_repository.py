"""Payment Order Repository Interface

Defines the contract for payment order persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.domain.payment_order import PaymentOrder


class PaymentOrderRepository(ABC):
    """
    Repository interface for PaymentOrder persistence

    Status changes go through conditional updates that report whether a row
    was affected. There is no generic "save status" method on purpose: a
    read-then-write status change would reopen the double-credit race.
    """

    @abstractmethod
    async def create(self, order: PaymentOrder) -> PaymentOrder:
        pass

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[PaymentOrder]:
        pass

    @abstractmethod
    async def get_by_external_order_id(self, external_order_id: str) -> Optional[PaymentOrder]:
        pass

    @abstractmethod
    async def mark_paid_if_unpaid(
        self, order_id: str, external_payment_id: str, paid_at: datetime
    ) -> bool:
        """
        Set status=paid WHERE id=order_id AND status <> paid

        Returns:
            True if this call changed the row (the caller won the transition)
        """
        pass

    @abstractmethod
    async def mark_failed_if_unpaid(
        self, external_order_id: str, external_payment_id: Optional[str], failed_at: datetime
    ) -> bool:
        """
        Set status=failed WHERE external_order_id=... AND status <> paid

        Returns:
            True if a row was changed
        """
        pass

    @abstractmethod
    async def list_paid_by_user(self, user_id: str, limit: int = 10) -> List[PaymentOrder]:
        pass
