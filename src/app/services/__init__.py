from .unit_of_work import UnitOfWork
from .notification_service import NotificationService, ReconciliationAlert
from .audit_logger import AuditLogger
from .signature_verifier import HmacSignatureVerifier
from .idempotency_guard import IdempotencyGuard, GuardOutcome
from .ledger_transition import LedgerTransitionEngine, TransitionResult
from .credit_reconciler import CreditReconciler, CreditGrantResult

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "ReconciliationAlert",
    "AuditLogger",
    "HmacSignatureVerifier",
    "IdempotencyGuard",
    "GuardOutcome",
    "LedgerTransitionEngine",
    "TransitionResult",
    "CreditReconciler",
    "CreditGrantResult",
]
