"""Get Account Summary Use Case

Retrieves the caller's credit balance and recent paid orders.
"""

from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from .dtos import (
    AccountProfileDTO,
    AccountStatsDTO,
    AccountSummaryResponseDTO,
    PaidOrderDTO,
)

RECENT_ORDERS_LIMIT = 10


class GetAccountSummary:
    """
    Get Account Summary Use Case

    Read-only. A user without a ledger simply has a balance of 0; the user id
    always comes from the verified token so callers only see their own data.
    """

    def __init__(
        self,
        ledger_repo: CreditLedgerRepository,
        order_repo: PaymentOrderRepository,
    ):
        self.ledger_repo = ledger_repo
        self.order_repo = order_repo

    async def execute(
        self, user_id: str, email: Optional[str] = None, name: Optional[str] = None
    ) -> Result[AccountSummaryResponseDTO]:
        """
        Errors:
            ACCOUNT_LOOKUP_FAILED: Ledger or order query failed
        """
        try:
            ledger = await self.ledger_repo.get_by_user_id(user_id)
            orders = await self.order_repo.list_paid_by_user(user_id, limit=RECENT_ORDERS_LIMIT)
        except Exception as e:
            return Return.err(
                Error(
                    code="ACCOUNT_LOOKUP_FAILED",
                    message="Failed to load account",
                    reason=str(e),
                )
            )

        paid_orders = [
            PaidOrderDTO(
                id=order.id,
                plan_id=order.plan_id,
                plan_name=order.plan_name,
                amount=order.amount,
                currency=order.currency,
                credits_purchased=order.credits_purchased,
                external_order_id=order.external_order_id,
                paid_at=order.paid_at,
                created_at=order.created_at,
            )
            for order in orders
        ]

        return Return.ok(
            AccountSummaryResponseDTO(
                profile=AccountProfileDTO(
                    id=user_id,
                    email=email,
                    name=name,
                    credits=ledger.balance if ledger else 0,
                ),
                orders=paid_orders,
                stats=AccountStatsDTO(
                    total_credits_purchased=sum(o.credits_purchased for o in paid_orders),
                    total_payments=len(paid_orders),
                ),
            )
        )
