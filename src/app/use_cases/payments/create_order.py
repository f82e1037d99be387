"""CreateOrder Use Case

Issues a pending payment order priced from the server-side plan table.
"""

import logging
import time
from typing import Any, Dict
from libs.result import Result, Return, Error
from src.app.errors import PaymentProviderError
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.audit_logger import AuditLogger
from src.app.services.payment_provider import PaymentProvider
from src.app.services.rate_limiter import RateLimiter, RateLimitBucket
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.payment_order import PaymentOrder, OrderStatus
from .dtos import CreateOrderCommandDTO, CreateOrderResponseDTO, PrefillDTO

logger = logging.getLogger(__name__)


class CreateOrder:
    """
    Use Case: Create a pending payment order

    Business Rules:
    1. Amount, currency and credits come from the server price table only
    2. Unknown plan is rejected before anything else happens
    3. Rate limited per user (the limiter fails open)
    4. Provider failure leaves no order row behind
    5. The order row is written only after the provider order exists

    Flow:
    1. Validate plan
    2. Check rate limit
    3. Create provider order
    4. Persist pending order and commit
    5. Audit and return checkout details
    """

    def __init__(
        self,
        uow: UnitOfWork,
        order_repo: PaymentOrderRepository,
        payment_provider: PaymentProvider,
        rate_limiter: RateLimiter,
        audit_logger: AuditLogger,
        pricing_plans: Dict[str, Dict[str, Any]],
    ):
        self.uow = uow
        self.order_repo = order_repo
        self.payment_provider = payment_provider
        self.rate_limiter = rate_limiter
        self.audit_logger = audit_logger
        self.pricing_plans = pricing_plans

    async def execute(self, command: CreateOrderCommandDTO) -> Result[CreateOrderResponseDTO]:
        # Step 1: Validate plan against the server-held price table
        plan = self.pricing_plans.get(command.plan_id)
        if not plan:
            return Return.err(
                Error(
                    code="INVALID_PLAN",
                    message=f"Invalid plan: {command.plan_id}",
                )
            )

        # Step 2: Rate limit per user
        limit = await self.rate_limiter.check(RateLimitBucket.ORDER, command.user_id)
        if limit.degraded:
            logger.warning(f"Order rate limiting degraded, allowing request for {command.user_id}")
        if not limit.allowed:
            return Return.err(
                Error(
                    code="RATE_LIMITED",
                    message="Too many requests. Please try again in a minute.",
                    reason=f"limit={limit.limit}, reset_at={limit.reset_at}",
                )
            )

        # Step 3: Create the provider order (charge handle)
        receipt = f"rcpt_{command.user_id[:8]}_{int(time.time() * 1000)}"
        notes = {
            "userId": command.user_id,
            "planId": command.plan_id,
            "planName": plan["name"],
            "credits": str(plan["credits"]),
        }
        try:
            provider_order = await self.payment_provider.create_order(
                amount=plan["price"],
                currency=plan["currency"],
                receipt=receipt,
                notes=notes,
            )
        except PaymentProviderError as e:
            if e.description:
                return Return.err(
                    Error(code="PROVIDER_REJECTED", message=e.description, reason=str(e))
                )
            return Return.err(
                Error(
                    code="PROVIDER_UNAVAILABLE",
                    message="Failed to create order. Please try again.",
                    reason=str(e),
                )
            )

        # Step 4: Persist the pending order
        order = PaymentOrder(
            user_id=command.user_id,
            plan_id=command.plan_id,
            plan_name=plan["name"],
            amount=plan["price"],
            currency=plan["currency"],
            credits_purchased=plan["credits"],
            external_order_id=provider_order.id,
            status=OrderStatus.PENDING,
        )
        try:
            order = await self.order_repo.create(order)
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to store order {provider_order.id}: {e}")
            return Return.err(
                Error(
                    code="ORDER_PERSIST_FAILED",
                    message="Failed to create order. Please try again.",
                    reason=str(e),
                )
            )

        order_id = order.id

        # Step 5: Audit
        await self.audit_logger.record(
            "order_created",
            status="created",
            user_id=command.user_id,
            order_id=order_id,
            external_order_id=provider_order.id,
            metadata={
                "planId": command.plan_id,
                "planName": plan["name"],
                "credits": plan["credits"],
                "amount": plan["price"],
                "currency": plan["currency"],
                "receipt": receipt,
                "rateLimitDegraded": limit.degraded,
            },
        )

        logger.info(f"Order {order_id} created for user {command.user_id} (plan {command.plan_id})")

        return Return.ok(
            CreateOrderResponseDTO(
                order_id=provider_order.id,
                amount=plan["price"],
                currency=plan["currency"],
                key_id=self.payment_provider.key_id,
                prefill=PrefillDTO(name=command.user_name or "", email=command.user_email),
            )
        )
