"""Coupon validation and discount computation"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.errors import (
    CouponBelowMinimum,
    CouponExpired,
    CouponInactive,
    CouponLimitExceeded,
    CouponNotFound,
    CouponNotYetActive,
)
from labflow.models.coupon import Coupon, DiscountType

logger = structlog.get_logger()


@dataclass
class CouponQuote:
    """Outcome of applying a coupon to an order amount (paise)"""
    coupon: Coupon
    order_paise: int
    discount_paise: int

    @property
    def final_paise(self) -> int:
        return self.order_paise - self.discount_paise


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_discount(coupon: Coupon, order_paise: int) -> int:
    """
    Discount for ``order_paise`` under ``coupon``, rounded half-up to whole paise.

    PERCENTAGE coupons are capped at ``max_discount_paise`` when set. FIXED
    coupons are capped at the order amount so the final amount never goes
    negative.
    """
    amount = Decimal(order_paise)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = amount * Decimal(coupon.discount_value) / Decimal(100)
        if coupon.max_discount_paise is not None and discount > coupon.max_discount_paise:
            discount = Decimal(coupon.max_discount_paise)
    else:
        discount = Decimal(coupon.discount_value)
        if discount > amount:
            discount = amount

    discount = discount.quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(min(discount, amount))


def check_eligibility(coupon: Coupon, order_paise: int, now: Optional[datetime] = None) -> None:
    """Raise the first eligibility rule the coupon fails"""
    now = now or datetime.utcnow()

    if not coupon.is_active:
        raise CouponInactive(code=coupon.code)

    if coupon.valid_to and now > coupon.valid_to:
        raise CouponExpired(code=coupon.code)

    if coupon.valid_from and now < coupon.valid_from:
        raise CouponNotYetActive(code=coupon.code)

    if coupon.min_order_paise and order_paise < coupon.min_order_paise:
        raise CouponBelowMinimum(
            f"Minimum order amount of {coupon.min_order_paise} paise required",
            code=coupon.code,
            min_order_paise=coupon.min_order_paise,
        )

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponLimitExceeded(code=coupon.code)


class CouponEngine:
    """Validates coupon codes against order amounts"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def validate(self, code: str, order_paise: int, now: Optional[datetime] = None) -> CouponQuote:
        result = await self.db.execute(
            select(Coupon).where(Coupon.code == normalize_code(code))
        )
        coupon = result.scalar_one_or_none()

        if coupon is None:
            raise CouponNotFound(code=normalize_code(code))

        check_eligibility(coupon, order_paise, now)

        return CouponQuote(
            coupon=coupon,
            order_paise=order_paise,
            discount_paise=compute_discount(coupon, order_paise),
        )

    async def redeem(self, coupon: Coupon) -> None:
        """Consume one use, guarded against racing past the usage limit"""
        stmt = update(Coupon).where(Coupon.id == coupon.id)
        if coupon.usage_limit is not None:
            stmt = stmt.where(Coupon.used_count < Coupon.usage_limit)

        result = await self.db.execute(
            stmt.values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise CouponLimitExceeded(code=coupon.code)

        logger.info("Coupon redeemed", coupon=coupon.code)

    async def release(self, code: str) -> None:
        """Give back one use of a coupon"""
        await self.db.execute(
            update(Coupon)
            .where(Coupon.code == normalize_code(code), Coupon.used_count > 0)
            .values(used_count=Coupon.used_count - 1)
            .execution_options(synchronize_session=False)
        )
        logger.info("Coupon released", coupon=normalize_code(code))
