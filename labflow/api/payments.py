"""Payment API endpoints"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.api.auth import get_current_active_user
from labflow.api.deps import get_ledger
from labflow.config import settings
from labflow.database import get_db
from labflow.errors import Forbidden
from labflow.models.user import User
from labflow.schemas.order import OrderResponse
from labflow.schemas.payment import (
    PaymentOrderCreate,
    PaymentOrderResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from labflow.services.authz import can_pay_for_order
from labflow.services.order_ledger import OrderLedger
from labflow.services.payments import PaymentGateway, PaymentVerifier

router = APIRouter()


def get_payment_gateway(db: AsyncSession = Depends(get_db)) -> PaymentGateway:
    return PaymentGateway(db)


@router.post("/create-order", response_model=PaymentOrderResponse)
async def create_payment_order(
    request: PaymentOrderCreate,
    current_user: User = Depends(get_current_active_user),
    ledger: OrderLedger = Depends(get_ledger),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Open a provider-side payment for a pending order"""
    order = await ledger.get_order(request.order_id)
    if not can_pay_for_order(current_user, order):
        raise Forbidden(order_id=str(order.id))

    data = await gateway.create_provider_order(order)

    return PaymentOrderResponse(
        provider_order_id=data["id"],
        amount=data.get("amount", order.final_paise),
        currency=data.get("currency", settings.payment_currency),
        key_id=gateway.key_id,
    )


@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    request: PaymentVerifyRequest,
    http_request: Request,
    current_user: User = Depends(get_current_active_user),
    ledger: OrderLedger = Depends(get_ledger),
):
    """Confirm an order from a signed provider callback"""
    order = await ledger.get_order(request.order_id)
    if not can_pay_for_order(current_user, order):
        raise Forbidden(order_id=str(order.id))

    order = await PaymentVerifier(ledger).confirm(
        request.order_id,
        request.provider_payment_id,
        request.provider_order_id,
        request.signature,
        actor_id=current_user.id,
        ip_address=http_request.client.host if http_request.client else None,
    )
    return PaymentVerifyResponse(order=OrderResponse.model_validate(order))
