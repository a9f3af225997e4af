"""Coupon model"""

import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, Uuid
import enum

from labflow.database import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class Coupon(Base):
    """Discount codes"""
    __tablename__ = "coupons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(64), unique=True, nullable=False)  # Stored upper-case
    description = Column(String(255))

    # Discount: percent for PERCENTAGE, paise for FIXED
    discount_type = Column(Enum(DiscountType), nullable=False)
    discount_value = Column(Integer, nullable=False)
    min_order_paise = Column(Integer)
    max_discount_paise = Column(Integer)

    # Usage
    usage_limit = Column(Integer)
    used_count = Column(Integer, nullable=False, default=0)

    # Validity
    valid_from = Column(DateTime)
    valid_to = Column(DateTime)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
