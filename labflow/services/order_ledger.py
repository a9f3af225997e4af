"""
Order ledger: checkout, the order status state machine and its audit trail.

Every status change goes through ``apply_transition``, which checks the edge
against ``ORDER_TRANSITIONS``, writes the new status with a version-guarded
UPDATE and appends a history row in the caller's transaction. Notifications
are queued and only sent after ``commit``.
"""

import secrets
import uuid
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from labflow.errors import (
    Conflict,
    CouponError,
    InvalidAddress,
    InvalidCoupon,
    InvalidItem,
    InvalidTransition,
    OrderNotFound,
)
from labflow.models.catalog import LabTest
from labflow.models.home_visit import HomeVisit, VisitStatus
from labflow.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    PaymentMethod,
)
from labflow.models.user import Address, User
from labflow.services.coupons import CouponEngine
from labflow.services.notifications import NotificationEvent, Notifier, RecordingNotifier

logger = structlog.get_logger()


TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
})

FORWARD_CHAIN: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.SAMPLE_COLLECTION_SCHEDULED,
    OrderStatus.SAMPLE_COLLECTED,
    OrderStatus.REPORT_READY,
    OrderStatus.COMPLETED,
)


def _build_transitions() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    graph: Dict[OrderStatus, FrozenSet[OrderStatus]] = {}
    for current, following in zip(FORWARD_CHAIN, FORWARD_CHAIN[1:]):
        graph[current] = frozenset({following, OrderStatus.CANCELLED})
    for status in TERMINAL_STATUSES:
        graph[status] = frozenset()
    return graph


ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = _build_transitions()

STATUS_EVENTS: Dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: NotificationEvent.ORDER_CONFIRMED,
    OrderStatus.SAMPLE_COLLECTION_SCHEDULED: NotificationEvent.SAMPLE_COLLECTION_SCHEDULED,
    OrderStatus.SAMPLE_COLLECTED: NotificationEvent.SAMPLE_COLLECTED,
    OrderStatus.REPORT_READY: NotificationEvent.REPORT_READY,
    OrderStatus.COMPLETED: NotificationEvent.ORDER_COMPLETED,
    OrderStatus.CANCELLED: NotificationEvent.ORDER_CANCELLED,
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ORDER_TRANSITIONS.get(current, frozenset())


def generate_order_number() -> str:
    return f"LF{datetime.utcnow().year}{secrets.token_hex(4).upper()}"


class OrderLedger:
    """Owns orders, their items, and the status history"""

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or RecordingNotifier()
        self._pending: List[Tuple[str, Dict[str, Any]]] = []

    # Unit of work

    def queue_notification(self, event: str, payload: Dict[str, Any]) -> None:
        self._pending.append((event, payload))

    async def commit(self) -> None:
        """Commit the session, then deliver notifications queued in it"""
        await self.db.commit()
        pending, self._pending = self._pending, []
        for event, payload in pending:
            await self.notifier.notify(event, payload)

    async def rollback(self) -> None:
        self._pending.clear()
        await self.db.rollback()

    # Reads

    async def get_order(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(
                selectinload(Order.items),
                selectinload(Order.home_visit),
                selectinload(Order.report),
                selectinload(Order.user),
            )
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFound(order_id=str(order_id))
        return order

    async def list_orders(
        self,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[Sequence[Order], int]:
        query = select(Order)
        count_query = select(func.count(Order.id))

        if user_id is not None:
            query = query.where(Order.user_id == user_id)
            count_query = count_query.where(Order.user_id == user_id)

        if status is not None:
            query = query.where(Order.status == status)
            count_query = count_query.where(Order.status == status)

        total = (await self.db.execute(count_query)).scalar()

        offset = (page - 1) * page_size
        result = await self.db.execute(
            query.options(
                selectinload(Order.items),
                selectinload(Order.home_visit),
                selectinload(Order.report),
            )
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(page_size)
        )
        return result.scalars().all(), total

    async def history(self, order_id: uuid.UUID) -> Sequence[OrderStatusHistory]:
        result = await self.db.execute(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
        )
        return result.scalars().all()

    # Checkout

    async def create_order(
        self,
        user: User,
        items: Sequence[Any],
        address_id: uuid.UUID,
        scheduled_date: date,
        scheduled_time: str,
        payment_method: PaymentMethod,
        coupon_code: Optional[str] = None,
    ) -> Order:
        """
        Create an order, its items and its SCHEDULED home visit as one unit.

        ``items`` is a sequence of objects exposing ``test_id`` and ``quantity``.
        Prices come from the catalog, never from the caller.
        """
        try:
            order = await self._create_order(
                user, items, address_id, scheduled_date, scheduled_time, payment_method, coupon_code
            )
            await self.commit()
        except Exception:
            await self.rollback()
            raise

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            final_paise=order.final_paise,
        )
        return await self.get_order(order.id)

    async def _create_order(
        self,
        user: User,
        items: Sequence[Any],
        address_id: uuid.UUID,
        scheduled_date: date,
        scheduled_time: str,
        payment_method: PaymentMethod,
        coupon_code: Optional[str],
    ) -> Order:
        result = await self.db.execute(
            select(Address).where(Address.id == address_id, Address.user_id == user.id)
        )
        if result.scalar_one_or_none() is None:
            raise InvalidAddress(address_id=str(address_id))

        if not items:
            raise InvalidItem("At least one test is required")

        for item in items:
            if item.quantity < 1:
                raise InvalidItem("Quantity must be at least 1", test_id=str(item.test_id))

        test_ids = {item.test_id for item in items}
        result = await self.db.execute(
            select(LabTest).where(LabTest.id.in_(test_ids), LabTest.is_active == True)
        )
        tests = {test.id: test for test in result.scalars().all()}

        missing = test_ids - set(tests)
        if missing:
            raise InvalidItem(missing=sorted(str(test_id) for test_id in missing))

        # Totals
        total = sum(tests[item.test_id].price_paise * item.quantity for item in items)
        subtotal = sum(tests[item.test_id].effective_price_paise * item.quantity for item in items)
        discount = total - subtotal

        applied_code = None
        if coupon_code:
            coupons = CouponEngine(self.db)
            try:
                quote = await coupons.validate(coupon_code, subtotal)
                await coupons.redeem(quote.coupon)
            except CouponError as e:
                raise InvalidCoupon(e.message, reason=e.code, **e.details) from e
            discount += quote.discount_paise
            applied_code = quote.coupon.code

        order = Order(
            order_number=generate_order_number(),
            user_id=user.id,
            address_id=address_id,
            status=OrderStatus.PENDING,
            version=1,
            total_paise=total,
            discount_paise=discount,
            final_paise=total - discount,
            coupon_code=applied_code,
            payment_method=payment_method,
        )
        self.db.add(order)
        await self.db.flush()

        for item in items:
            test = tests[item.test_id]
            self.db.add(OrderItem(
                order_id=order.id,
                test_id=test.id,
                test_name=test.name,
                quantity=item.quantity,
                unit_price_paise=test.effective_price_paise,
                list_price_paise=test.price_paise,
            ))

        self.db.add(HomeVisit(
            order_id=order.id,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            status=VisitStatus.SCHEDULED,
            version=1,
        ))

        self.db.add(OrderStatusHistory(
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order placed",
            actor_id=user.id,
        ))

        await self.db.flush()
        return order

    # Transitions

    async def transition(
        self,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        actor_id: Optional[uuid.UUID],
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Apply one status transition in its own transaction"""
        try:
            order = await self.apply_transition(
                order_id, new_status, actor_id, notes=notes, expected_version=expected_version
            )
            await self.commit()
        except Exception:
            await self.rollback()
            raise
        return order

    async def apply_transition(
        self,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        actor_id: Optional[uuid.UUID],
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """
        Move an order to ``new_status`` inside the current transaction.

        The caller commits or rolls back. Raises ``InvalidTransition`` for an
        edge missing from the graph and ``Conflict`` when the order changed
        since it was read.
        """
        order = await self.get_order(order_id)

        if expected_version is not None and order.version != expected_version:
            raise Conflict(
                order_id=str(order.id),
                expected_version=expected_version,
                current_version=order.version,
            )

        previous = order.status
        if not can_transition(previous, new_status):
            raise InvalidTransition(previous.value, new_status.value)

        await self._write_status(order, new_status)

        self.db.add(OrderStatusHistory(
            order_id=order.id,
            status=new_status,
            notes=notes,
            actor_id=actor_id,
        ))

        if new_status == OrderStatus.CANCELLED:
            await self._cancel_home_visit(order.id)
            if order.coupon_code and previous == OrderStatus.PENDING:
                await CouponEngine(self.db).release(order.coupon_code)

        await self.db.flush()
        order = await self.get_order(order.id)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous.value,
            to_status=new_status.value,
            actor_id=str(actor_id) if actor_id else None,
        )
        self.queue_notification(STATUS_EVENTS[new_status], self.event_payload(order))
        return order

    async def _write_status(self, order: Order, new_status: OrderStatus) -> None:
        result = await self.db.execute(
            update(Order)
            .where(
                Order.id == order.id,
                Order.version == order.version,
                Order.status == order.status,
            )
            .values(
                status=new_status,
                version=Order.version + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Conflict(
                "Order was modified by another request",
                order_id=str(order.id),
                attempted=new_status.value,
            )

    async def _cancel_home_visit(self, order_id: uuid.UUID) -> None:
        await self.db.execute(
            update(HomeVisit)
            .where(
                HomeVisit.order_id == order_id,
                HomeVisit.status.in_([VisitStatus.SCHEDULED, VisitStatus.IN_PROGRESS]),
            )
            .values(
                status=VisitStatus.CANCELLED,
                version=HomeVisit.version + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def event_payload(order: Order) -> Dict[str, Any]:
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": order.status.value,
            "user_id": str(order.user_id),
            "phone": order.user.phone if order.user else None,
            "final_paise": order.final_paise,
        }
