"""User and address models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship
import enum

from labflow.database import Base


class UserRole(str, enum.Enum):
    """User roles"""
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    HOME_VISIT_AGENT = "HOME_VISIT_AGENT"


class Capability(str, enum.Enum):
    """Closed set of things a role may be allowed to do"""
    PLACE_ORDERS = "place_orders"
    VIEW_ALL_ORDERS = "view_all_orders"
    MANAGE_ORDERS = "manage_orders"
    ASSIGN_AGENTS = "assign_agents"
    UPDATE_ANY_VISIT = "update_any_visit"
    COLLECT_SAMPLES = "collect_samples"
    MANAGE_REPORTS = "manage_reports"


ROLE_CAPABILITIES = {
    UserRole.CUSTOMER: frozenset({Capability.PLACE_ORDERS}),
    UserRole.HOME_VISIT_AGENT: frozenset({Capability.COLLECT_SAMPLES}),
    UserRole.ADMIN: frozenset({
        Capability.PLACE_ORDERS,
        Capability.VIEW_ALL_ORDERS,
        Capability.MANAGE_ORDERS,
        Capability.ASSIGN_AGENTS,
        Capability.UPDATE_ANY_VISIT,
        Capability.MANAGE_REPORTS,
    }),
}


class User(Base):
    """Customers, administrators and field agents"""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Identity
    phone = Column(String(20), unique=True, nullable=False)
    email = Column(String(255), unique=True)
    name = Column(String(255))

    # Role
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)

    # Status
    is_active = Column(Boolean, default=True)

    # Timestamps
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    addresses = relationship("Address", back_populates="user")

    def can(self, capability: Capability) -> bool:
        """Check whether the user's role grants a capability"""
        if not self.is_active:
            return False
        return capability in ROLE_CAPABILITIES.get(self.role, frozenset())


class AddressKind(str, enum.Enum):
    HOME = "HOME"
    WORK = "WORK"
    OTHER = "OTHER"


class Address(Base):
    """Sample collection addresses"""
    __tablename__ = "addresses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(Enum(AddressKind), nullable=False, default=AddressKind.HOME)
    line1 = Column(String(255), nullable=False)
    line2 = Column(String(255))
    landmark = Column(String(255))
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pincode = Column(String(10), nullable=False)
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="addresses")
