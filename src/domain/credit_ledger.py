"""Credit Ledger Domain Entity

Tracks the spendable credit balance per user. Each user has at most one ledger.
Purchased credits are added through a single atomic increment.
"""

from datetime import datetime
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, BigInteger, Integer
from src.domain.base import BaseModel


class CreditLedger(BaseModel, table=True):
    """
    Credit Ledger - Tracks user credit balance

    Domain Rules:
    - One ledger per user (user_id is unique)
    - Balance must be non-negative
    - Grants use UPDATE ... SET balance = balance + n, never read-modify-write
    - Created lazily on the first grant
    """

    __tablename__ = "credit_ledgers"
    __table_args__ = (
        CheckConstraint('balance >= 0', name='balance_non_negative'),
    )

    id: int = Field(
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Unique ledger identifier (auto-increment)"
    )

    user_id: str = Field(
        index=True,
        unique=True,
        description="User ID (unique - one ledger per user)"
    )

    balance: int = Field(
        sa_column=Column(Integer, nullable=False, default=0),
        description="Current credit balance (must be >= 0)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Ledger creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": "user_abc123",
                "balance": 20,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
