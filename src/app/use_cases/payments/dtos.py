"""Data Transfer Objects for Payment Use Cases

Pydantic models for command inputs and response outputs. Responses are
serialized with camelCase aliases for the checkout client.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CreateOrderCommandDTO(BaseModel):
    """
    Command DTO for creating a payment order

    Identity fields come from the verified bearer token, never the body.
    """

    user_id: str = Field(..., description="Authenticated user id")
    user_email: Optional[str] = Field(default=None, description="Authenticated user email")
    user_name: Optional[str] = Field(default=None, description="Display name for checkout prefill")
    plan_id: str = Field(..., description="Pricing plan key")


class PrefillDTO(CamelModel):
    name: str = ""
    email: Optional[str] = None


class CreateOrderResponseDTO(CamelModel):
    """
    Response DTO for order creation

    order_id is the provider order id the checkout client pays against.
    """

    order_id: str = Field(..., description="Provider order id")
    amount: int = Field(..., description="Amount in minor currency units")
    currency: str = Field(..., description="Currency code (ISO 4217)")
    key_id: str = Field(..., description="Public provider key id for checkout")
    prefill: PrefillDTO

    class Config:
        json_schema_extra = {
            "example": {
                "orderId": "order_NX3kq2Yp0aBcDe",
                "amount": 12900,
                "currency": "INR",
                "keyId": "rzp_live_abc123",
                "prefill": {"name": "Asha", "email": "asha@example.com"}
            }
        }


class VerifyPaymentCommandDTO(BaseModel):
    user_id: str = Field(..., description="Authenticated user id")
    external_order_id: str = Field(..., min_length=1)
    external_payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class VerifyPaymentResponseDTO(CamelModel):
    success: bool = True
    credits_added: int = Field(..., description="Credits purchased by the order")
    message: str = Field(default="Payment verified successfully")
    order_id: Optional[str] = Field(default=None, description="Internal order id")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "creditsAdded": 20,
                "message": "Payment verified successfully",
                "orderId": "5b1f8a52-7c1e-4a9b-9d0e-0c4b3f3d2a11"
            }
        }


class WebhookCommandDTO(BaseModel):
    raw_body: bytes
    signature: Optional[str] = None


class WebhookResponseDTO(BaseModel):
    status: str = "ok"
    message: Optional[str] = None


class PaidOrderDTO(CamelModel):
    id: str
    plan_id: str
    plan_name: str
    amount: int
    currency: str
    credits_purchased: int
    external_order_id: str
    paid_at: Optional[datetime] = None
    created_at: datetime


class AccountProfileDTO(CamelModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    credits: int = 0


class AccountStatsDTO(CamelModel):
    total_credits_purchased: int = 0
    total_payments: int = 0


class AccountSummaryResponseDTO(CamelModel):
    success: bool = True
    profile: AccountProfileDTO
    orders: List[PaidOrderDTO] = Field(default_factory=list)
    stats: AccountStatsDTO


class PurgeResultDTO(BaseModel):
    deleted_count: int
    purged_before: datetime
    execution_time_ms: int
