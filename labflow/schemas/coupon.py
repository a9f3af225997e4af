"""Coupon schemas"""

from typing import Optional
from pydantic import BaseModel, Field

from labflow.models.coupon import DiscountType


class CouponValidateRequest(BaseModel):
    """Check a coupon against an order amount"""
    code: str = Field(..., min_length=1, max_length=64)
    order_paise: int = Field(..., ge=0)


class CouponValidateResponse(BaseModel):
    """Applicable coupon and the resulting amounts"""
    code: str
    description: Optional[str]
    discount_type: DiscountType
    discount_value: int
    discount_paise: int
    final_paise: int
