"""Report model"""

import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from labflow.database import Base


class Report(Base):
    """Diagnostic report file, at most one per order"""
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), unique=True, nullable=False)
    uploaded_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # File
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    notes = Column(Text)

    # Delivery
    is_delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime)

    uploaded_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="report")
