"""Credit Reconciler

Grants purchased credits after a won ledger transition. The order is never
rolled back when crediting fails: the payment really happened, so the order
stays paid and an audit entry flags it for manual reconciliation.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from libs.context import get_request_id
from libs.retry import retry_with_backoff
from src.app.errors import CreditGrantError
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.audit_logger import AuditLogger
from src.app.services.notification_service import NotificationService, ReconciliationAlert
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.domain.payment_order import PaymentOrder

logger = logging.getLogger(__name__)


@dataclass
class CreditGrantResult:
    credited: bool
    credits: int
    attempts: int
    error: Optional[str] = None


class CreditReconciler:
    """
    Business Rules:
    1. Only the transition winner calls grant()
    2. Each attempt is one atomic increment, bounded by attempt_timeout
    3. Bounded retries with a configured delay between attempts
    4. Exhaustion writes a manual-fix audit entry and does not raise
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger_repo: CreditLedgerRepository,
        audit_logger: AuditLogger,
        max_attempts: int = 2,
        retry_delay: float = 0.5,
        backoff_multiplier: float = 1.0,
        attempt_timeout: float = 5.0,
        notifier: Optional[NotificationService] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.uow = uow
        self.ledger_repo = ledger_repo
        self.audit_logger = audit_logger
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.backoff_multiplier = backoff_multiplier
        self.attempt_timeout = attempt_timeout
        self.notifier = notifier
        self._sleep = sleep

    async def grant(self, order: PaymentOrder) -> CreditGrantResult:
        # Rollbacks expire ORM instances, so read everything needed up front
        order_id = order.id
        user_id = order.user_id
        credits = order.credits_purchased
        external_order_id = order.external_order_id
        external_payment_id = order.external_payment_id
        attempts = 0

        async def attempt():
            nonlocal attempts
            attempts += 1
            try:
                await asyncio.wait_for(
                    self.ledger_repo.increment_balance(user_id, credits),
                    timeout=self.attempt_timeout,
                )
                await self.uow.commit()
            except asyncio.TimeoutError as e:
                await self.uow.rollback()
                raise CreditGrantError(
                    f"Credit increment timed out after {self.attempt_timeout}s"
                ) from e
            except Exception:
                await self.uow.rollback()
                raise

        async def on_retry(attempt_number: int, error: BaseException):
            logger.warning(
                f"Credit grant attempt {attempt_number}/{self.max_attempts} failed "
                f"for order {order_id}: {error}"
            )
            await self.audit_logger.record(
                "credit_grant_retry",
                status="retrying",
                user_id=user_id,
                order_id=order_id,
                external_order_id=external_order_id,
                error=str(error),
                metadata={"attempt": attempt_number, "credits": credits},
            )

        try:
            await retry_with_backoff(
                attempt,
                max_attempts=self.max_attempts,
                initial_delay=self.retry_delay,
                backoff_multiplier=self.backoff_multiplier,
                on_retry=on_retry,
                sleep=self._sleep,
            )
        except Exception as e:
            logger.critical(
                f"MANUAL FIX REQUIRED: order {order_id} is paid but "
                f"{credits} credits were not granted to user "
                f"{user_id} after {attempts} attempts: {e}"
            )
            await self.audit_logger.record(
                "credit_grant_failed",
                status="manual_fix_required",
                user_id=user_id,
                order_id=order_id,
                external_order_id=external_order_id,
                external_payment_id=external_payment_id,
                error=str(e),
                metadata={
                    "credits": credits,
                    "user_id": user_id,
                    "attempts": attempts,
                },
                manual_fix_required=True,
            )
            await self._alert(
                ReconciliationAlert(
                    order_id=order_id,
                    user_id=user_id,
                    external_order_id=external_order_id,
                    external_payment_id=external_payment_id,
                    credits=credits,
                    attempts=attempts,
                    error=str(e),
                    request_id=get_request_id(),
                )
            )
            return CreditGrantResult(
                credited=False,
                credits=credits,
                attempts=attempts,
                error=str(e),
            )

        await self.audit_logger.record(
            "credits_granted",
            status="success",
            user_id=user_id,
            order_id=order_id,
            external_order_id=external_order_id,
            external_payment_id=external_payment_id,
            metadata={"credits": credits, "attempts": attempts},
        )
        logger.info(
            f"Credits added: user={user_id}, credits={credits}, "
            f"order={order_id}"
        )
        return CreditGrantResult(
            credited=True, credits=credits, attempts=attempts
        )

    async def _alert(self, alert: ReconciliationAlert):
        if self.notifier is None:
            return
        try:
            await self.notifier.send_reconciliation_alert(alert)
        except Exception as e:
            logger.error(f"Reconciliation alert for order {alert.order_id} failed: {e}")
