"""Audit log model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Text, Uuid

from labflow.database import Base


class AuditLog(Base):
    """Audit trail for security-relevant actions"""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Actor information
    actor_id = Column(Uuid)  # User ID or null for system
    actor_type = Column(String(50))  # user, system, provider

    # Action details
    action = Column(String(100), nullable=False)  # payment_confirmed, payment_signature_invalid, etc.
    resource_type = Column(String(50))  # order, report, home_visit
    resource_id = Column(Uuid)

    # Event data
    data_json = Column(JSON)

    # Request context
    ip_address = Column(String(50))
    user_agent = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
