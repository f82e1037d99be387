"""Request schemas for Payments API

Pydantic models for validating incoming HTTP requests. The checkout client
sends camelCase field names.
"""

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class CreateOrderRequestSchema(BaseModel):
    """
    Request schema for creating a payment order

    Used for POST /payments/orders. Only the plan is accepted; price and
    credits are resolved on the server.
    """

    plan_id: str = Field(
        ...,
        min_length=1,
        description="Pricing plan key (e.g., 'essentials')"
    )

    @field_validator('plan_id')
    @classmethod
    def strip_plan_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("planId must not be blank")
        return v

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {"planId": "essentials"}
        }


class VerifyPaymentRequestSchema(BaseModel):
    """
    Request schema for client-side payment confirmation

    Used for POST /payments/verify with the values returned by checkout.
    """

    external_order_id: str = Field(
        ...,
        min_length=1,
        description="Provider order id"
    )

    external_payment_id: str = Field(
        ...,
        min_length=1,
        description="Provider payment id"
    )

    signature: str = Field(
        ...,
        min_length=1,
        description="Hex HMAC-SHA256 of '<order id>|<payment id>'"
    )

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "externalOrderId": "order_NX3kq2Yp0aBcDe",
                "externalPaymentId": "pay_NX3lLm8d9QrStU",
                "signature": "9f2c0b1a..."
            }
        }
