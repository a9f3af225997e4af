"""Database models"""

from labflow.models.user import User, UserRole, Capability, Address, AddressKind
from labflow.models.catalog import Category, LabTest, CatalogKind
from labflow.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentMethod
from labflow.models.home_visit import HomeVisit, VisitStatus
from labflow.models.report import Report
from labflow.models.coupon import Coupon, DiscountType
from labflow.models.audit import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Capability",
    "Address",
    "AddressKind",
    "Category",
    "LabTest",
    "CatalogKind",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderStatusHistory",
    "PaymentMethod",
    "HomeVisit",
    "VisitStatus",
    "Report",
    "Coupon",
    "DiscountType",
    "AuditLog",
]
