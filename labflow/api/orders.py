"""Order management API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from labflow.api.auth import get_current_active_user, require_capability
from labflow.api.deps import get_ledger
from labflow.errors import Forbidden
from labflow.models.order import OrderStatus
from labflow.models.user import Capability, User
from labflow.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    StatusHistoryResponse,
)
from labflow.services.authz import can_view_order
from labflow.services.order_ledger import OrderLedger

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: OrderCreate,
    current_user: User = Depends(require_capability(Capability.PLACE_ORDERS)),
    ledger: OrderLedger = Depends(get_ledger),
):
    """Place an order with its home visit"""
    return await ledger.create_order(
        current_user,
        request.items,
        address_id=request.address_id,
        scheduled_date=request.scheduled_date,
        scheduled_time=request.scheduled_time,
        payment_method=request.payment_method,
        coupon_code=request.coupon_code,
    )


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    current_user: User = Depends(get_current_active_user),
    ledger: OrderLedger = Depends(get_ledger),
):
    """List the caller's orders"""
    orders, total = await ledger.list_orders(
        user_id=current_user.id, status=status, page=page, page_size=page_size
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    current_user: User = Depends(get_current_active_user),
    ledger: OrderLedger = Depends(get_ledger),
):
    """Get order details"""
    order = await ledger.get_order(order_id)
    if not can_view_order(current_user, order):
        raise Forbidden(order_id=str(order_id))
    return order


@router.get("/{order_id}/history", response_model=List[StatusHistoryResponse])
async def get_order_history(
    order_id: UUID,
    current_user: User = Depends(get_current_active_user),
    ledger: OrderLedger = Depends(get_ledger),
):
    """Status history of an order, oldest first"""
    order = await ledger.get_order(order_id)
    if not can_view_order(current_user, order):
        raise Forbidden(order_id=str(order_id))
    return await ledger.history(order_id)
