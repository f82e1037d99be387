from .payment_order_repository import SqlAlchemyPaymentOrderRepository
from .credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from .idempotency_key_repository import SqlAlchemyIdempotencyKeyRepository
from .audit_log_repository import SqlAlchemyAuditLogRepository

__all__ = [
    "SqlAlchemyPaymentOrderRepository",
    "SqlAlchemyCreditLedgerRepository",
    "SqlAlchemyIdempotencyKeyRepository",
    "SqlAlchemyAuditLogRepository",
]
