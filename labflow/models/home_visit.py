"""Home visit model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
import enum

from labflow.database import Base


class VisitStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class HomeVisit(Base):
    """At-home sample collection appointment, one per order"""
    __tablename__ = "home_visits"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), unique=True, nullable=False)
    agent_id = Column(Uuid, ForeignKey("users.id"))

    # Schedule
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(32), nullable=False)  # Slot label, e.g. "08:00-09:00"

    # Status
    status = Column(Enum(VisitStatus), nullable=False, default=VisitStatus.SCHEDULED)
    version = Column(Integer, nullable=False, default=1)

    # Collection
    collection_otp = Column(String(10))
    collection_time = Column(DateTime)
    notes = Column(Text)

    # Reminder
    reminder_sent = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="home_visit")
    agent = relationship("User")

    @property
    def order_number(self):
        return self.order.order_number if self.order is not None else None
