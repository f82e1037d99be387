from .base import BaseModel, generate_uuid
from .payment_order import PaymentOrder, OrderStatus
from .credit_ledger import CreditLedger
from .idempotency_key import IdempotencyKey
from .audit_log import AuditLogEntry

__all__ = [
    "BaseModel",
    "generate_uuid",
    "PaymentOrder",
    "OrderStatus",
    "CreditLedger",
    "IdempotencyKey",
    "AuditLogEntry",
]
