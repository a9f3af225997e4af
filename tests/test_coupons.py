"""Coupon engine tests"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from labflow.errors import (
    CouponBelowMinimum,
    CouponExpired,
    CouponInactive,
    CouponLimitExceeded,
    CouponNotFound,
    CouponNotYetActive,
)
from labflow.models.coupon import Coupon, DiscountType
from labflow.services.coupons import CouponEngine, check_eligibility, compute_discount


def make_coupon(**overrides):
    fields = dict(
        code="TEST",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=10,
        is_active=True,
        used_count=0,
    )
    fields.update(overrides)
    return Coupon(**fields)


def test_percentage_without_cap():
    coupon = make_coupon(discount_value=10)
    assert compute_discount(coupon, 100000) == 10000


def test_percentage_capped_at_max_discount():
    coupon = make_coupon(discount_value=10, max_discount_paise=5000)
    assert compute_discount(coupon, 100000) == 5000


def test_fixed_capped_at_order_amount():
    coupon = make_coupon(discount_type=DiscountType.FIXED, discount_value=50000)
    assert compute_discount(coupon, 30000) == 30000


def test_percentage_rounds_half_up():
    coupon = make_coupon(discount_value=25)
    # 24.75 paise
    assert compute_discount(coupon, 99) == 25
    # 0.5 paise
    assert compute_discount(make_coupon(discount_value=10), 5) == 1


def test_inactive_checked_before_expiry():
    coupon = make_coupon(is_active=False, valid_to=datetime.utcnow() - timedelta(days=1))
    with pytest.raises(CouponInactive):
        check_eligibility(coupon, 100000)


def test_expired_and_not_yet_active():
    now = datetime(2026, 6, 1, 12, 0)
    expired = make_coupon(valid_to=now - timedelta(seconds=1))
    upcoming = make_coupon(valid_from=now + timedelta(days=1))

    with pytest.raises(CouponExpired):
        check_eligibility(expired, 100000, now=now)
    with pytest.raises(CouponNotYetActive):
        check_eligibility(upcoming, 100000, now=now)


def test_below_minimum():
    coupon = make_coupon(min_order_paise=50000)
    with pytest.raises(CouponBelowMinimum) as exc:
        check_eligibility(coupon, 49999)
    assert exc.value.details["min_order_paise"] == 50000

    check_eligibility(coupon, 50000)


def test_usage_limit_reached():
    coupon = make_coupon(usage_limit=5, used_count=5)
    with pytest.raises(CouponLimitExceeded):
        check_eligibility(coupon, 100000)


@pytest.mark.asyncio
async def test_validate_is_case_insensitive(test_db, test_coupons):
    quote = await CouponEngine(test_db).validate("  ten ", 100000)

    assert quote.coupon.code == "TEN"
    assert quote.discount_paise == 10000
    assert quote.final_paise == 90000


@pytest.mark.asyncio
async def test_validate_unknown_code(test_db, test_coupons):
    with pytest.raises(CouponNotFound):
        await CouponEngine(test_db).validate("NOPE", 100000)


@pytest.mark.asyncio
async def test_fixed_coupon_never_goes_negative(test_db, test_coupons):
    quote = await CouponEngine(test_db).validate("FLAT500", 30000)

    assert quote.discount_paise == 30000
    assert quote.final_paise == 0


@pytest.mark.asyncio
async def test_redeem_stops_at_usage_limit(test_db, test_coupons):
    engine = CouponEngine(test_db)
    coupon = test_coupons["ONCE"]

    await engine.redeem(coupon)
    with pytest.raises(CouponLimitExceeded):
        await engine.redeem(coupon)
    await test_db.commit()

    result = await test_db.execute(select(Coupon.used_count).where(Coupon.code == "ONCE"))
    assert result.scalar_one() == 1


@pytest.mark.asyncio
async def test_release_never_goes_below_zero(test_db, test_coupons):
    engine = CouponEngine(test_db)

    await engine.release("ten")
    await test_db.commit()

    result = await test_db.execute(select(Coupon.used_count).where(Coupon.code == "TEN"))
    assert result.scalar_one() == 0
