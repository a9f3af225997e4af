"""Order schemas"""

from datetime import date, datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from labflow.models.home_visit import VisitStatus
from labflow.models.order import OrderStatus, PaymentMethod


class OrderItemCreate(BaseModel):
    """Create order item"""
    test_id: UUID
    quantity: int = Field(1, ge=1)


class OrderCreate(BaseModel):
    """Create order request"""
    items: List[OrderItemCreate] = Field(..., min_length=1)
    address_id: UUID
    scheduled_date: date
    scheduled_time: str = Field(..., min_length=1, max_length=32)
    coupon_code: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.RAZORPAY


class StatusUpdate(BaseModel):
    """Move an order to a new status"""
    status: OrderStatus
    version: int  # Version the caller last read
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    """Order item in response"""
    id: UUID
    test_id: UUID
    test_name: str
    quantity: int
    unit_price_paise: int
    list_price_paise: int

    class Config:
        from_attributes = True


class HomeVisitResponse(BaseModel):
    """Home visit in response"""
    id: UUID
    order_id: UUID
    agent_id: Optional[UUID]
    scheduled_date: date
    scheduled_time: str
    status: VisitStatus
    version: int
    collection_time: Optional[datetime]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Order response"""
    id: UUID
    order_number: str
    user_id: UUID
    address_id: UUID
    status: OrderStatus
    version: int
    total_paise: int
    discount_paise: int
    final_paise: int
    coupon_code: Optional[str]
    payment_method: PaymentMethod
    provider_order_id: Optional[str]
    payment_id: Optional[str]
    items: List[OrderItemResponse]
    home_visit: Optional[HomeVisitResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    """Paginated order list"""
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int


class StatusHistoryResponse(BaseModel):
    """One status history row"""
    id: UUID
    order_id: UUID
    status: OrderStatus
    notes: Optional[str]
    actor_id: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True
