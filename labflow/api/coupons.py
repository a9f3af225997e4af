"""Coupon API endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.api.auth import get_current_active_user
from labflow.database import get_db
from labflow.models.user import User
from labflow.schemas.coupon import CouponValidateRequest, CouponValidateResponse
from labflow.services.coupons import CouponEngine

router = APIRouter()


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    request: CouponValidateRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Check whether a coupon applies to an order amount"""
    quote = await CouponEngine(db).validate(request.code, request.order_paise)
    return CouponValidateResponse(
        code=quote.coupon.code,
        description=quote.coupon.description,
        discount_type=quote.coupon.discount_type,
        discount_value=quote.coupon.discount_value,
        discount_paise=quote.discount_paise,
        final_paise=quote.final_paise,
    )
