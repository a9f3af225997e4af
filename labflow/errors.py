"""
Domain error taxonomy.

Every failure raised by the core services is a ``LabflowError``. Each carries the
HTTP status it maps to at the API boundary and a stable machine-readable code,
so the exception handlers in ``labflow.main`` can render a uniform envelope.
"""

from typing import Any, Dict, Optional


class LabflowError(Exception):
    """Base class for expected, caller-visible failures"""

    status_code = 400
    code = "BAD_REQUEST"
    message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# Validation

class ValidationFailed(LabflowError):
    code = "VALIDATION_ERROR"
    message = "Invalid input data"


class InvalidAddress(ValidationFailed):
    code = "INVALID_ADDRESS"
    message = "Invalid address"


class InvalidItem(ValidationFailed):
    code = "INVALID_ITEM"
    message = "Some tests are not available"


class InvalidCoupon(ValidationFailed):
    code = "INVALID_COUPON"
    message = "Coupon cannot be applied"


class UnsupportedType(ValidationFailed):
    code = "UNSUPPORTED_TYPE"
    message = "Invalid file type. Only PDF, JPG, and PNG files are allowed."


class TooLarge(ValidationFailed):
    code = "FILE_TOO_LARGE"
    message = "File size too large"


class LastAddress(ValidationFailed):
    code = "LAST_ADDRESS"
    message = "Cannot delete the only address"


# Authorization

class Unauthenticated(LabflowError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required"


class Forbidden(LabflowError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You are not allowed to perform this action"


# Not found

class NotFound(LabflowError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"
    message = "Order not found"


class VisitNotFound(NotFound):
    code = "HOME_VISIT_NOT_FOUND"
    message = "Home visit not found"


class ReportNotFound(NotFound):
    code = "REPORT_NOT_FOUND"
    message = "Report not found"


class AgentNotFound(NotFound):
    code = "AGENT_NOT_FOUND"
    message = "Agent not found or not active"


class AddressNotFound(NotFound):
    code = "ADDRESS_NOT_FOUND"
    message = "Address not found"


class CatalogItemNotFound(NotFound):
    code = "CATALOG_ITEM_NOT_FOUND"
    message = "Test not found"


# Conflict

class Conflict(LabflowError):
    status_code = 409
    code = "CONFLICT"
    message = "The resource was modified by another request"


class DuplicateReport(Conflict):
    code = "DUPLICATE_REPORT"
    message = "Order already has a report uploaded"


class EmailInUse(Conflict):
    code = "EMAIL_IN_USE"
    message = "Email is already in use"


class AddressInUse(Conflict):
    code = "ADDRESS_IN_USE"
    message = "Address is used by existing orders"


class AlreadyDelivered(LabflowError):
    code = "ALREADY_DELIVERED"
    message = "Report is already marked as delivered"


# Illegal transition

class InvalidTransition(LabflowError):
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, attempted: str, entity: str = "order"):
        super().__init__(
            f"Cannot move {entity} from {current} to {attempted}",
            current=current,
            attempted=attempted,
        )


# Coupons

class CouponError(LabflowError):
    code = "COUPON_ERROR"


class CouponNotFound(CouponError):
    status_code = 404
    code = "COUPON_NOT_FOUND"
    message = "Invalid coupon code"


class CouponInactive(CouponError):
    code = "COUPON_INACTIVE"
    message = "Coupon is no longer active"


class CouponExpired(CouponError):
    code = "COUPON_EXPIRED"
    message = "Coupon has expired"


class CouponNotYetActive(CouponError):
    code = "COUPON_NOT_YET_ACTIVE"
    message = "Coupon is not yet active"


class CouponBelowMinimum(CouponError):
    code = "COUPON_BELOW_MINIMUM"
    message = "Order amount is below the coupon minimum"


class CouponLimitExceeded(CouponError):
    status_code = 409
    code = "COUPON_LIMIT_EXCEEDED"
    message = "Coupon usage limit exceeded"


# OTP

class OTPNotFound(LabflowError):
    code = "OTP_NOT_FOUND"
    message = "OTP not found or expired"


class OTPMismatch(LabflowError):
    code = "OTP_MISMATCH"
    message = "Invalid OTP"


# Payments

class SignatureInvalid(LabflowError):
    code = "SIGNATURE_INVALID"
    message = "Payment verification failed"


class PaymentGatewayUnavailable(LabflowError):
    status_code = 503
    code = "PAYMENT_GATEWAY_UNAVAILABLE"
    message = "Payment gateway not configured"


class PaymentGatewayError(LabflowError):
    status_code = 502
    code = "PAYMENT_GATEWAY_ERROR"
    message = "Failed to create payment order"
