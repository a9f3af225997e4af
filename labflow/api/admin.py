"""Administrator order endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from labflow.api.auth import require_capability
from labflow.api.deps import get_ledger
from labflow.models.order import OrderStatus
from labflow.models.user import Capability, User
from labflow.schemas.order import OrderListResponse, OrderResponse, StatusUpdate
from labflow.services.order_ledger import OrderLedger

router = APIRouter()


@router.get("/orders", response_model=OrderListResponse)
async def list_all_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    current_user: User = Depends(require_capability(Capability.VIEW_ALL_ORDERS)),
    ledger: OrderLedger = Depends(get_ledger),
):
    """List all orders"""
    orders, total = await ledger.list_orders(status=status, page=page, page_size=page_size)
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: UUID,
    request: StatusUpdate,
    current_user: User = Depends(require_capability(Capability.MANAGE_ORDERS)),
    ledger: OrderLedger = Depends(get_ledger),
):
    """Move an order along its status graph"""
    return await ledger.transition(
        order_id,
        request.status,
        current_user.id,
        notes=request.notes,
        expected_version=request.version,
    )
