"""VerifyPayment Use Case

Client-side payment confirmation. Races freely with the webhook for the same
order; the ledger transition engine picks the single winner that credits.
"""

import logging
from libs.result import Result, Return, Error
from src.app.errors import LedgerTransitionError, OrderNotFoundError
from src.app.services.audit_logger import AuditLogger
from src.app.services.credit_reconciler import CreditReconciler
from src.app.services.ledger_transition import LedgerTransitionEngine
from src.app.services.signature_verifier import HmacSignatureVerifier
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from src.domain.payment_order import OrderStatus
from .dtos import VerifyPaymentCommandDTO, VerifyPaymentResponseDTO

logger = logging.getLogger(__name__)


class VerifyPayment:
    """
    Use Case: Confirm a payment reported by the checkout client

    Business Rules:
    1. Signature over "<order_id>|<payment_id>" must match, else nothing changes
    2. The caller must own the order
    3. Already-paid orders return success without crediting again
    4. Only the transition winner credits; crediting problems never turn a
       successful payment into a failed response

    Flow:
    1. Verify signature (audit failures)
    2. Load order by provider order id
    3. Check ownership
    4. Conditional transition to paid
    5. Winner grants credits
    6. Audit and respond
    """

    def __init__(
        self,
        order_repo: PaymentOrderRepository,
        signature_verifier: HmacSignatureVerifier,
        transition_engine: LedgerTransitionEngine,
        credit_reconciler: CreditReconciler,
        audit_logger: AuditLogger,
    ):
        self.order_repo = order_repo
        self.signature_verifier = signature_verifier
        self.transition_engine = transition_engine
        self.credit_reconciler = credit_reconciler
        self.audit_logger = audit_logger

    async def execute(self, command: VerifyPaymentCommandDTO) -> Result[VerifyPaymentResponseDTO]:
        if not self.signature_verifier.is_configured:
            logger.error("Missing payment key secret")
            return Return.err(
                Error(code="PAYMENT_NOT_CONFIGURED", message="Payment verification not configured")
            )

        # Step 1: Signature check (sole trust boundary)
        message = HmacSignatureVerifier.payment_message(
            command.external_order_id, command.external_payment_id
        )
        if not self.signature_verifier.verify(message, command.signature):
            logger.error(f"Invalid payment signature for order {command.external_order_id}")
            await self.audit_logger.record(
                "signature_verification_failed",
                status="failed",
                user_id=command.user_id,
                external_order_id=command.external_order_id,
                external_payment_id=command.external_payment_id,
                error="Signature verification failed",
            )
            return Return.err(
                Error(
                    code="INVALID_SIGNATURE",
                    message="Payment verification failed. Please contact support.",
                )
            )

        # Step 2: Load order
        try:
            order = await self.order_repo.get_by_external_order_id(command.external_order_id)
        except Exception as e:
            logger.error(f"Order lookup failed for {command.external_order_id}: {e}")
            return Return.err(
                Error(code="INTERNAL_ERROR", message="Payment verification failed. Please contact support.", reason=str(e))
            )

        if order is None:
            return Return.err(Error(code="ORDER_NOT_FOUND", message="Order not found"))

        # Step 3: Ownership
        if order.user_id != command.user_id:
            logger.error(
                f"User mismatch for order {order.id}: "
                f"owner={order.user_id}, caller={command.user_id}"
            )
            return Return.err(Error(code="FORBIDDEN", message="Unauthorized"))

        if order.status == OrderStatus.PAID:
            await self.audit_logger.record(
                "payment_already_verified",
                status="success",
                user_id=command.user_id,
                order_id=order.id,
                external_order_id=command.external_order_id,
                external_payment_id=command.external_payment_id,
            )
            return Return.ok(
                VerifyPaymentResponseDTO(
                    credits_added=order.credits_purchased,
                    message="Payment already verified",
                    order_id=order.id,
                )
            )

        # Step 4: Conditional transition
        try:
            transition = await self.transition_engine.confirm(order.id, command.external_payment_id)
        except OrderNotFoundError:
            return Return.err(Error(code="ORDER_NOT_FOUND", message="Order not found"))
        except LedgerTransitionError as e:
            return Return.err(
                Error(
                    code="LEDGER_TRANSITION_FAILED",
                    message="Failed to update payment status",
                    reason=str(e.__cause__ or e),
                )
            )

        paid_order = transition.order
        order_id = paid_order.id
        credits = paid_order.credits_purchased
        plan_id = paid_order.plan_id
        plan_name = paid_order.plan_name
        amount = paid_order.amount
        currency = paid_order.currency

        if not transition.won:
            return Return.ok(
                VerifyPaymentResponseDTO(
                    credits_added=credits,
                    message="Payment already verified",
                    order_id=order_id,
                )
            )

        # Step 5: Winner credits the account
        grant = await self.credit_reconciler.grant(paid_order)

        # Step 6: Audit
        await self.audit_logger.record(
            "payment_verified",
            status="success",
            user_id=command.user_id,
            order_id=order_id,
            external_order_id=command.external_order_id,
            external_payment_id=command.external_payment_id,
            metadata={
                "planId": plan_id,
                "planName": plan_name,
                "amount": amount,
                "currency": currency,
                "creditsAdded": credits,
                "creditGrant": "granted" if grant.credited else "manual_fix_required",
            },
        )

        return Return.ok(
            VerifyPaymentResponseDTO(
                credits_added=credits,
                message="Payment verified successfully",
                order_id=order_id,
            )
        )
