"""Order fulfillment core"""

from labflow.services.coupons import CouponEngine
from labflow.services.notifications import NotificationEvent, Notifier
from labflow.services.order_ledger import OrderLedger
from labflow.services.otp import OTPAuthGate, get_otp_gate
from labflow.services.payments import PaymentGateway, PaymentVerifier
from labflow.services.reports import ReportVault
from labflow.services.scheduling import SchedulingDispatcher

__all__ = [
    "CouponEngine",
    "NotificationEvent",
    "Notifier",
    "OrderLedger",
    "OTPAuthGate",
    "get_otp_gate",
    "PaymentGateway",
    "PaymentVerifier",
    "ReportVault",
    "SchedulingDispatcher",
]
