"""Payment schemas"""

from uuid import UUID
from pydantic import BaseModel, Field

from labflow.schemas.order import OrderResponse


class PaymentOrderCreate(BaseModel):
    """Open a provider-side payment for an order"""
    order_id: UUID


class PaymentOrderResponse(BaseModel):
    """Provider order details for the checkout widget"""
    provider_order_id: str
    amount: int
    currency: str
    key_id: str


class PaymentVerifyRequest(BaseModel):
    """Provider checkout callback"""
    order_id: UUID
    provider_payment_id: str = Field(..., min_length=1)
    provider_order_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class PaymentVerifyResponse(BaseModel):
    """Order after payment confirmation"""
    order: OrderResponse
