"""Payment provider integration: provider orders and signed callbacks"""

import hashlib
import hmac
import uuid
from typing import Any, Dict, Optional

import httpx
import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.config import settings
from labflow.errors import (
    Conflict,
    InvalidTransition,
    PaymentGatewayError,
    PaymentGatewayUnavailable,
    SignatureInvalid,
)
from labflow.models.audit import AuditLog
from labflow.models.order import Order, OrderStatus, PaymentMethod
from labflow.services.order_ledger import OrderLedger

logger = structlog.get_logger()


def sign_payment(provider_order_id: str, provider_payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 over ``"<provider_order_id>|<provider_payment_id>"``"""
    message = f"{provider_order_id}|{provider_payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signature_matches(
    provider_order_id: str,
    provider_payment_id: str,
    signature: str,
    secret: str,
) -> bool:
    expected = sign_payment(provider_order_id, provider_payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class PaymentVerifier:
    """
    Verifies provider callbacks and confirms PENDING orders.

    Confirmation is idempotent: a verified callback for an order that has
    already left PENDING returns the order untouched.
    """

    def __init__(self, ledger: OrderLedger, secret: Optional[str] = None):
        self.ledger = ledger
        self.db: AsyncSession = ledger.db
        self.secret = secret if secret is not None else settings.payment_key_secret

    async def confirm(
        self,
        order_id: uuid.UUID,
        provider_payment_id: str,
        provider_order_id: str,
        signature: str,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> Order:
        order = await self.ledger.get_order(order_id)

        valid = bool(self.secret) and signature_matches(
            provider_order_id, provider_payment_id, signature, self.secret
        )
        if valid and order.provider_order_id and order.provider_order_id != provider_order_id:
            valid = False

        if not valid:
            await self._record_failure(order, provider_payment_id, provider_order_id, actor_id, ip_address)
            raise SignatureInvalid(order_id=str(order_id))

        if order.status != OrderStatus.PENDING:
            logger.info(
                "Payment callback for non-pending order ignored",
                order_id=str(order.id),
                status=order.status.value,
            )
            return order

        try:
            await self.db.execute(
                update(Order)
                .where(Order.id == order.id, Order.status == OrderStatus.PENDING)
                .values(payment_id=provider_payment_id, payment_method=PaymentMethod.RAZORPAY)
                .execution_options(synchronize_session=False)
            )
            order = await self.ledger.apply_transition(
                order.id,
                OrderStatus.CONFIRMED,
                actor_id,
                notes="Payment verified successfully",
            )
            self.db.add(AuditLog(
                actor_id=actor_id,
                actor_type="user" if actor_id else "provider",
                action="payment_confirmed",
                resource_type="order",
                resource_id=order.id,
                data_json={
                    "provider_order_id": provider_order_id,
                    "provider_payment_id": provider_payment_id,
                },
                ip_address=ip_address,
            ))
            await self.ledger.commit()
        except (Conflict, InvalidTransition):
            # A concurrent callback confirmed first.
            await self.ledger.rollback()
            order = await self.ledger.get_order(order_id)
            if order.status == OrderStatus.PENDING:
                raise
            return order
        except Exception:
            await self.ledger.rollback()
            raise

        logger.info(
            "Payment confirmed",
            order_id=str(order.id),
            provider_payment_id=provider_payment_id,
        )
        return order

    async def _record_failure(
        self,
        order: Order,
        provider_payment_id: str,
        provider_order_id: str,
        actor_id: Optional[uuid.UUID],
        ip_address: Optional[str],
    ) -> None:
        logger.warning(
            "Payment signature verification failed",
            order_id=str(order.id),
            provider_payment_id=provider_payment_id,
            provider_order_id=provider_order_id,
        )
        self.db.add(AuditLog(
            actor_id=actor_id,
            actor_type="user" if actor_id else "provider",
            action="payment_signature_invalid",
            resource_type="order",
            resource_id=order.id,
            data_json={
                "provider_order_id": provider_order_id,
                "provider_payment_id": provider_payment_id,
                "expected_provider_order_id": order.provider_order_id,
            },
            ip_address=ip_address,
        ))
        await self.db.commit()


class PaymentGateway:
    """Creates provider-side payment orders over the provider's REST API"""

    def __init__(
        self,
        db: AsyncSession,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.key_id = key_id if key_id is not None else settings.payment_key_id
        self.key_secret = key_secret if key_secret is not None else settings.payment_key_secret
        self.base_url = base_url or settings.payment_api_url
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def create_provider_order(self, order: Order) -> Dict[str, Any]:
        if not self.configured:
            raise PaymentGatewayUnavailable()

        if order.status != OrderStatus.PENDING:
            raise InvalidTransition(order.status.value, OrderStatus.CONFIRMED.value)

        payload = {
            "amount": order.final_paise,
            "currency": settings.payment_currency,
            "receipt": order.order_number,
            "notes": {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "user_id": str(order.user_id),
            },
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=10.0,
                transport=self.transport,
            ) as client:
                response = await client.post("/orders", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("Payment provider order creation failed", order_id=str(order.id), error=str(e))
            raise PaymentGatewayError(order_id=str(order.id)) from e

        await self.db.execute(
            update(Order)
            .where(Order.id == order.id)
            .values(provider_order_id=data["id"])
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        logger.info("Payment provider order created", order_id=str(order.id), provider_order_id=data["id"])
        return data
