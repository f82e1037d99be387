"""HandleWebhook Use Case

Processes signed, at-least-once provider webhook deliveries.
"""

import json
import logging
from typing import Any, Dict, Optional
from libs.result import Result, Return, Error
from src.app.errors import OrderNotFoundError
from src.app.services.audit_logger import AuditLogger
from src.app.services.credit_reconciler import CreditReconciler
from src.app.services.idempotency_guard import IdempotencyGuard
from src.app.services.ledger_transition import LedgerTransitionEngine
from src.app.services.signature_verifier import HmacSignatureVerifier
from src.app.repositories.payment_order_repository import PaymentOrderRepository
from .dtos import WebhookCommandDTO, WebhookResponseDTO

logger = logging.getLogger(__name__)

CAPTURE_EVENTS = ("payment.captured", "order.paid")
FAILURE_EVENTS = ("payment.failed",)


def _entity(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = payload.get(name) or {}
    if not isinstance(section, dict):
        return {}
    entity = section.get("entity") or {}
    return entity if isinstance(entity, dict) else {}


class HandleWebhook:
    """
    Use Case: Apply a provider webhook event

    Business Rules:
    1. Signature over the raw body is checked before parsing
    2. Each event key is processed at most once (insert-first guard)
    3. Duplicates and unknown orders answer 200 so the provider stops retrying
    4. Capture events go through the same transition engine as client
       confirmations, so racing paths credit exactly once
    5. Failure events never demote a paid order
    6. Infrastructure failures release the key and answer 500 so the
       provider retries

    Flow:
    1. Verify signature
    2. Parse envelope
    3. Acquire idempotency key
    4. Audit event receipt
    5. Dispatch on event type
    """

    def __init__(
        self,
        order_repo: PaymentOrderRepository,
        signature_verifier: HmacSignatureVerifier,
        idempotency_guard: IdempotencyGuard,
        transition_engine: LedgerTransitionEngine,
        credit_reconciler: CreditReconciler,
        audit_logger: AuditLogger,
    ):
        self.order_repo = order_repo
        self.signature_verifier = signature_verifier
        self.idempotency_guard = idempotency_guard
        self.transition_engine = transition_engine
        self.credit_reconciler = credit_reconciler
        self.audit_logger = audit_logger

    async def execute(self, command: WebhookCommandDTO) -> Result[WebhookResponseDTO]:
        if not self.signature_verifier.is_configured:
            logger.error("Missing webhook secret")
            return Return.err(
                Error(code="WEBHOOK_NOT_CONFIGURED", message="Webhook not configured")
            )

        # Step 1: Signature over the raw body
        if not command.signature:
            logger.error("Webhook delivery without signature header")
            return Return.err(Error(code="MISSING_SIGNATURE", message="Missing signature"))

        if not self.signature_verifier.verify(command.raw_body, command.signature):
            logger.error("Invalid webhook signature")
            await self.audit_logger.record(
                "signature_verification_failed",
                status="failed",
                error="Webhook signature verification failed",
                metadata={"source": "webhook"},
            )
            return Return.err(Error(code="INVALID_SIGNATURE", message="Invalid signature"))

        # Step 2: Parse envelope
        try:
            envelope = json.loads(command.raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            return Return.err(
                Error(code="MALFORMED_PAYLOAD", message="Invalid JSON payload", reason=str(e))
            )
        if not isinstance(envelope, dict) or not envelope.get("event"):
            return Return.err(Error(code="MALFORMED_PAYLOAD", message="Missing event type"))

        event = str(envelope["event"])
        payload = envelope.get("payload") or {}
        if not isinstance(payload, dict):
            payload = {}
        payment = _entity(payload, "payment")
        order_entity = _entity(payload, "order")
        payment_id: Optional[str] = payment.get("id")
        external_order_id: Optional[str] = payment.get("order_id") or order_entity.get("id")

        # Step 3: Idempotency
        key = IdempotencyGuard.derive_key(event, payment_id or external_order_id, command.raw_body)
        try:
            outcome = await self.idempotency_guard.acquire(key)
        except Exception as e:
            logger.error(f"Idempotency check failed for {key}: {e}")
            return Return.err(
                Error(code="WEBHOOK_PROCESSING_FAILED", message="Webhook processing failed", reason=str(e))
            )

        if outcome.is_duplicate:
            await self.audit_logger.record(
                "webhook_duplicate",
                status=outcome.value,
                external_order_id=external_order_id,
                external_payment_id=payment_id,
                metadata={"event": event, "key": key},
            )
            return Return.ok(WebhookResponseDTO(message="Already processed"))

        # Step 4: Audit receipt
        await self.audit_logger.record(
            f"webhook_{event}",
            status="received",
            external_order_id=external_order_id,
            external_payment_id=payment_id,
            metadata={"event": event, "amount": payment.get("amount")},
        )

        # Step 5: Dispatch
        try:
            if event in CAPTURE_EVENTS:
                return await self._handle_capture(event, external_order_id, payment_id)
            if event in FAILURE_EVENTS:
                return await self._handle_failure(external_order_id, payment_id, payment)
        except Exception as e:
            logger.error(f"Webhook {event} processing failed, releasing {key}: {e}")
            await self.idempotency_guard.release(key)
            return Return.err(
                Error(
                    code="WEBHOOK_PROCESSING_FAILED",
                    message="Webhook processing failed",
                    reason=str(e.__cause__ or e),
                )
            )

        logger.info(f"Unhandled webhook event: {event}")
        return Return.ok(WebhookResponseDTO())

    async def _handle_capture(
        self, event: str, external_order_id: Optional[str], payment_id: Optional[str]
    ) -> Result[WebhookResponseDTO]:
        order = None
        if external_order_id:
            order = await self.order_repo.get_by_external_order_id(external_order_id)

        if order is None:
            logger.error(f"Webhook {event} for unknown order {external_order_id}")
            await self.audit_logger.record(
                "order_not_found",
                status="failed",
                external_order_id=external_order_id,
                external_payment_id=payment_id,
                error="Order not found",
                metadata={"event": event},
            )
            return Return.ok(WebhookResponseDTO(message="Order not found"))

        try:
            transition = await self.transition_engine.confirm(
                order.id, payment_id or order.external_payment_id or ""
            )
        except OrderNotFoundError:
            return Return.ok(WebhookResponseDTO(message="Order not found"))

        if not transition.won:
            return Return.ok(WebhookResponseDTO(message="Already processed"))

        await self.credit_reconciler.grant(transition.order)
        return Return.ok(WebhookResponseDTO())

    async def _handle_failure(
        self,
        external_order_id: Optional[str],
        payment_id: Optional[str],
        payment: Dict[str, Any],
    ) -> Result[WebhookResponseDTO]:
        if not external_order_id:
            return Return.ok(WebhookResponseDTO(message="Order not found"))

        changed = await self.transition_engine.fail(external_order_id, payment_id)
        await self.audit_logger.record(
            "payment_failed",
            status="failed" if changed else "ignored",
            external_order_id=external_order_id,
            external_payment_id=payment_id,
            error=payment.get("error_description"),
            metadata={"errorCode": payment.get("error_code")},
        )
        return Return.ok(WebhookResponseDTO())
