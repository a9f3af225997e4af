"""Order models"""

import uuid
from datetime import datetime
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
import enum

from labflow.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SAMPLE_COLLECTION_SCHEDULED = "SAMPLE_COLLECTION_SCHEDULED"
    SAMPLE_COLLECTED = "SAMPLE_COLLECTED"
    REPORT_READY = "REPORT_READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    RAZORPAY = "razorpay"
    COD = "cod"


class Order(Base):
    """Diagnostic test orders"""
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("final_paise = total_paise - discount_paise", name="ck_orders_final_amount"),
        CheckConstraint("final_paise >= 0", name="ck_orders_final_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(String(32), unique=True, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    address_id = Column(Uuid, ForeignKey("addresses.id"), nullable=False)

    # Status
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    version = Column(Integer, nullable=False, default=1)

    # Pricing (paise)
    total_paise = Column(Integer, nullable=False)
    discount_paise = Column(Integer, nullable=False, default=0)
    final_paise = Column(Integer, nullable=False)
    coupon_code = Column(String(64))

    # Payment
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    provider_order_id = Column(String(100))
    payment_id = Column(String(100))

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User")
    address = relationship("Address")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    home_visit = relationship("HomeVisit", back_populates="order", uselist=False)
    report = relationship("Report", back_populates="order", uselist=False)
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        order_by="OrderStatusHistory.created_at",
    )


class OrderItem(Base):
    """Purchased tests with the price paid at checkout"""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)
    test_id = Column(Uuid, ForeignKey("lab_tests.id"), nullable=False)
    test_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price_paise = Column(Integer, nullable=False)  # Snapshot, never recomputed
    list_price_paise = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="items")


class OrderStatusHistory(Base):
    """Append-only audit trail of order status changes"""
    __tablename__ = "order_status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False)
    notes = Column(Text)
    actor_id = Column(Uuid)  # Null for system-originated changes
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="status_history")
