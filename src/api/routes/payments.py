"""Payments API Routes

FastAPI routes for order creation, payment confirmation and provider webhooks.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.payment_request import CreateOrderRequestSchema, VerifyPaymentRequestSchema
from src.app.services.audit_logger import AuditLogger
from src.app.services.credit_reconciler import CreditReconciler
from src.app.services.idempotency_guard import IdempotencyGuard
from src.app.services.identity_provider import AuthenticatedUser
from src.app.services.ledger_transition import LedgerTransitionEngine
from src.app.services.notification_service import NotificationService
from src.app.services.payment_provider import PaymentProvider
from src.app.services.rate_limiter import RateLimiter
from src.app.services.signature_verifier import HmacSignatureVerifier
from src.app.use_cases.payments.dtos import (
    AccountSummaryResponseDTO,
    CreateOrderCommandDTO,
    CreateOrderResponseDTO,
    VerifyPaymentCommandDTO,
    VerifyPaymentResponseDTO,
    WebhookCommandDTO,
    WebhookResponseDTO,
)
from src.app.use_cases.payments import CreateOrder, VerifyPayment, HandleWebhook, GetAccountSummary
from src.adapter.repositories.audit_log_repository import SqlAlchemyAuditLogRepository
from src.adapter.repositories.credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from src.adapter.repositories.idempotency_key_repository import SqlAlchemyIdempotencyKeyRepository
from src.adapter.repositories.payment_order_repository import SqlAlchemyPaymentOrderRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import (
    get_current_user,
    get_notification_service,
    get_payment_provider,
    get_rate_limiter,
    get_session,
    get_settings,
)
from src.api.error import ClientError

router = APIRouter(prefix="/payments", tags=["Payments"])

SIGNATURE_HEADER = "X-Razorpay-Signature"


def _error_example(code: str, message: str) -> dict:
    return {"content": {"application/json": {"example": {"error": {"code": code, "message": message}}}}}


def _credit_reconciler(
    uow: SqlAlchemyUnitOfWork,
    session: AsyncSession,
    audit_logger: AuditLogger,
    settings,
    notifier: NotificationService,
) -> CreditReconciler:
    return CreditReconciler(
        uow,
        SqlAlchemyCreditLedgerRepository(session),
        audit_logger,
        max_attempts=settings.CREDIT_RETRY_ATTEMPTS,
        retry_delay=settings.CREDIT_RETRY_DELAY_SECONDS,
        backoff_multiplier=settings.CREDIT_RETRY_BACKOFF_MULTIPLIER,
        attempt_timeout=settings.CREDIT_GRANT_TIMEOUT_SECONDS,
        notifier=notifier,
    )


@router.post(
    "/orders",
    response_model=CreateOrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Unknown plan", **_error_example("INVALID_PLAN", "Invalid plan: gold")},
        401: {"description": "Missing or invalid bearer token"},
        429: {"description": "Rate limited", **_error_example("RATE_LIMITED", "Too many requests. Please try again in a minute.")},
    },
)
async def create_order(
    request: CreateOrderRequestSchema,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    payment_provider: PaymentProvider = Depends(get_payment_provider),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    settings=Depends(get_settings),
):
    """
    Create a pending order for a pricing plan.

    Amount, currency and credits come from the server-side plan table; the
    response carries what the checkout widget needs (`orderId`, `amount`,
    `currency`, `keyId`, `prefill`).
    """
    uow = SqlAlchemyUnitOfWork(session)
    audit_logger = AuditLogger(uow, SqlAlchemyAuditLogRepository(session))

    command = CreateOrderCommandDTO(
        user_id=user.id,
        user_email=user.email,
        user_name=user.name,
        plan_id=request.plan_id,
    )

    use_case = CreateOrder(
        uow,
        SqlAlchemyPaymentOrderRepository(session),
        payment_provider,
        rate_limiter,
        audit_logger,
        settings.PRICING_PLANS,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/verify",
    response_model=VerifyPaymentResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Signature mismatch", **_error_example("INVALID_SIGNATURE", "Payment verification failed. Please contact support.")},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Order belongs to another user"},
        404: {"description": "Unknown order", **_error_example("ORDER_NOT_FOUND", "Order not found")},
    },
)
async def verify_payment(
    request: VerifyPaymentRequestSchema,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    notifier: NotificationService = Depends(get_notification_service),
    settings=Depends(get_settings),
):
    """
    Confirm a payment reported by the checkout client.

    Safe to call concurrently with the webhook for the same order: exactly
    one of them credits the account, both answer success.
    """
    uow = SqlAlchemyUnitOfWork(session)
    order_repo = SqlAlchemyPaymentOrderRepository(session)
    audit_logger = AuditLogger(uow, SqlAlchemyAuditLogRepository(session))

    command = VerifyPaymentCommandDTO(
        user_id=user.id,
        external_order_id=request.external_order_id,
        external_payment_id=request.external_payment_id,
        signature=request.signature,
    )

    use_case = VerifyPayment(
        order_repo,
        HmacSignatureVerifier(settings.PAYMENT_KEY_SECRET),
        LedgerTransitionEngine(uow, order_repo),
        _credit_reconciler(uow, session, audit_logger, settings, notifier),
        audit_logger,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/webhook",
    response_model=WebhookResponseDTO,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Missing or invalid signature, or malformed payload", **_error_example("INVALID_SIGNATURE", "Invalid signature")},
        500: {"description": "Processing failed; the provider should retry"},
    },
)
async def payment_webhook(
    request: Request,
    signature: Optional[str] = Header(default=None, alias=SIGNATURE_HEADER),
    session: AsyncSession = Depends(get_session),
    notifier: NotificationService = Depends(get_notification_service),
    settings=Depends(get_settings),
):
    """
    Provider webhook endpoint (no user auth; the signature over the raw body
    is the only trust check).

    Duplicates and events for unknown orders answer 200 so the provider
    stops retrying.
    """
    raw_body = await request.body()

    uow = SqlAlchemyUnitOfWork(session)
    order_repo = SqlAlchemyPaymentOrderRepository(session)
    audit_logger = AuditLogger(uow, SqlAlchemyAuditLogRepository(session))

    use_case = HandleWebhook(
        order_repo,
        HmacSignatureVerifier(settings.PAYMENT_WEBHOOK_SECRET),
        IdempotencyGuard(
            uow,
            SqlAlchemyIdempotencyKeyRepository(session),
            ttl_days=settings.IDEMPOTENCY_KEY_TTL_DAYS,
        ),
        LedgerTransitionEngine(uow, order_repo),
        _credit_reconciler(uow, session, audit_logger, settings, notifier),
        audit_logger,
    )
    result = await use_case.execute(WebhookCommandDTO(raw_body=raw_body, signature=signature))

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/account",
    response_model=AccountSummaryResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_account(
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Credit balance, last 10 paid orders and purchase stats of the caller."""
    use_case = GetAccountSummary(
        SqlAlchemyCreditLedgerRepository(session),
        SqlAlchemyPaymentOrderRepository(session),
    )
    result = await use_case.execute(user.id, email=user.email, name=user.name)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
