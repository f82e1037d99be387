"""Background workers for the payment service"""
from .idempotency_key_purger import IdempotencyKeyPurgerWorker

__all__ = ["IdempotencyKeyPurgerWorker"]
