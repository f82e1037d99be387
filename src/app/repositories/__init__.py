from .payment_order_repository import PaymentOrderRepository
from .credit_ledger_repository import CreditLedgerRepository
from .idempotency_key_repository import IdempotencyKeyRepository
from .audit_log_repository import AuditLogRepository

__all__ = [
    "PaymentOrderRepository",
    "CreditLedgerRepository",
    "IdempotencyKeyRepository",
    "AuditLogRepository",
]
