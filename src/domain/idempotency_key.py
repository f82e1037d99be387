"""Idempotency Key Domain Entity

Records that a webhook event has been claimed by a processor.
"""

from datetime import datetime
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, Integer, String
from src.domain.base import BaseModel


class IdempotencyKey(BaseModel, table=True):
    """
    Idempotency Key - First-processor claim for a webhook event

    Domain Rules:
    - key is unique; the insert that wins owns the event
    - expires_at only reclaims storage, the order status remains authoritative
    """

    __tablename__ = "idempotency_keys"
    __table_args__ = (
        Index('ix_idempotency_keys_expires_at', 'expires_at'),
    )

    id: int = Field(
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Unique key identifier (auto-increment)"
    )

    key: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True),
        description="Derived event key (e.g., webhook_payment.captured_pay_123)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event was claimed"
    )

    expires_at: datetime = Field(
        description="When the key may be purged"
    )
