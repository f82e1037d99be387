"""Audit Log Domain Entity

Immutable append-only record of every payment attempt and outcome.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, Integer, String, Text
from src.domain.base import BaseModel


class AuditLogEntry(BaseModel, table=True):
    """
    Audit Log Entry - Append-only payment event record

    Domain Rules:
    - Entries are never updated or deleted
    - manual_fix_required marks paid orders whose credits were not granted
    - metadata_json holds event-specific context as a JSON string
    """

    __tablename__ = "payment_audit_logs"
    __table_args__ = (
        Index('ix_payment_audit_logs_created_at', 'created_at'),
        Index('ix_payment_audit_logs_manual_fix', 'manual_fix_required'),
    )

    id: int = Field(
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Unique entry identifier (auto-increment)"
    )

    request_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Correlation id of the request that produced the entry"
    )

    event_type: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Event type (e.g., 'payment_verified', 'credit_grant_failed')"
    )

    user_id: Optional[str] = Field(
        default=None,
        index=True,
        description="User the event relates to, when known"
    )

    order_id: Optional[str] = Field(
        default=None,
        index=True,
        description="Internal order id, when known"
    )

    external_order_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Provider order id"
    )

    external_payment_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Provider payment id"
    )

    status: str = Field(
        sa_column=Column(String(50), nullable=False),
        description="Outcome (e.g., 'success', 'failed', 'duplicate', 'manual_fix_required')"
    )

    error: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Error message, if any"
    )

    metadata_json: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="JSON metadata for additional context"
    )

    manual_fix_required: bool = Field(
        default=False,
        description="True when an operator must reconcile this order by hand"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp (immutable)"
    )
