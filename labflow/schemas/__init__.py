"""Pydantic schemas for request/response validation"""

from labflow.schemas.auth import (
    OTPRequest,
    OTPRequestResponse,
    OTPVerify,
    OTPVerifyResponse,
    TokenPayload,
    UserResponse,
    ProfileUpdate,
)
from labflow.schemas.order import (
    OrderItemCreate,
    OrderCreate,
    StatusUpdate,
    OrderItemResponse,
    HomeVisitResponse,
    OrderResponse,
    OrderListResponse,
    StatusHistoryResponse,
)
from labflow.schemas.home_visit import (
    AssignRequest,
    VisitStatusUpdate,
    AgentResponse,
    HomeVisitDetail,
)
from labflow.schemas.address import AddressCreate, AddressUpdate, AddressResponse
from labflow.schemas.catalog import (
    CategorySummary,
    CategoryResponse,
    LabTestResponse,
    LabTestListResponse,
)
from labflow.schemas.report import ReportResponse
from labflow.schemas.coupon import CouponValidateRequest, CouponValidateResponse
from labflow.schemas.payment import (
    PaymentOrderCreate,
    PaymentOrderResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)

__all__ = [
    "OTPRequest",
    "OTPRequestResponse",
    "OTPVerify",
    "OTPVerifyResponse",
    "TokenPayload",
    "UserResponse",
    "ProfileUpdate",
    "OrderItemCreate",
    "OrderCreate",
    "StatusUpdate",
    "OrderItemResponse",
    "HomeVisitResponse",
    "OrderResponse",
    "OrderListResponse",
    "StatusHistoryResponse",
    "AssignRequest",
    "VisitStatusUpdate",
    "AgentResponse",
    "HomeVisitDetail",
    "AddressCreate",
    "AddressUpdate",
    "AddressResponse",
    "CategorySummary",
    "CategoryResponse",
    "LabTestResponse",
    "LabTestListResponse",
    "ReportResponse",
    "CouponValidateRequest",
    "CouponValidateResponse",
    "PaymentOrderCreate",
    "PaymentOrderResponse",
    "PaymentVerifyRequest",
    "PaymentVerifyResponse",
]
