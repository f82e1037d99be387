"""Payment Order Domain Entity

One row per checkout attempt. Created pending by the order issuer and moved
to paid exactly once by the ledger transition engine.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, BigInteger, Integer, String
from src.domain.base import BaseModel, generate_uuid


class OrderStatus(str, Enum):
    """Payment order status"""
    PENDING = "pending"  # Created, awaiting provider confirmation
    PAID = "paid"        # Terminal; credits granted (or flagged for manual fix)
    FAILED = "failed"    # Provider reported failure; a late success can still pay it


class PaymentOrder(BaseModel, table=True):
    """
    Payment Order - Tracks a single credit purchase

    Domain Rules:
    - Amount and credits come from the server-side price table, never the client
    - external_order_id is unique (one provider order per row)
    - Status transitions: pending -> paid, pending -> failed, failed -> paid
    - paid is terminal; credits are applied at most once per order
    """

    __tablename__ = "payment_orders"
    __table_args__ = (
        CheckConstraint('amount > 0', name='amount_positive'),
        CheckConstraint('credits_purchased > 0', name='credits_purchased_positive'),
        Index('ix_payment_orders_user_status', 'user_id', 'status'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Internal order identifier (uuid)"
    )

    user_id: str = Field(
        index=True,
        description="Owner of the order"
    )

    plan_id: str = Field(
        sa_column=Column(String(50), nullable=False),
        description="Pricing plan key (e.g., 'essentials')"
    )

    plan_name: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Human-readable plan name"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Amount in minor currency units (e.g., paise)"
    )

    currency: str = Field(
        default="INR",
        sa_column=Column(String(3), nullable=False),
        description="Currency code (ISO 4217)"
    )

    credits_purchased: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Credits granted when the order is paid"
    )

    external_order_id: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True),
        description="Provider order identifier"
    )

    external_payment_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Provider payment identifier (set on confirm or failure)"
    )

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        index=True,
        description="Order status (pending, paid, failed)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Order creation timestamp"
    )

    paid_at: Optional[datetime] = Field(
        default=None,
        description="Set by the winning ledger transition"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last status change timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "5b1f8a52-7c1e-4a9b-9d0e-0c4b3f3d2a11",
                "user_id": "user_abc123",
                "plan_id": "essentials",
                "plan_name": "Essentials",
                "amount": 12900,
                "currency": "INR",
                "credits_purchased": 20,
                "external_order_id": "order_NX3kq2Yp0aBcDe",
                "external_payment_id": None,
                "status": "pending",
                "created_at": "2024-01-01T00:00:00Z",
                "paid_at": None,
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
