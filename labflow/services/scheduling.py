"""
Home visit scheduling: agent assignment and visit progress.

Visit status changes cascade into the order through ``VISIT_ORDER_CASCADE``;
the visit write, the order transition and its history row commit together.
"""

import uuid
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Sequence

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from labflow.errors import AgentNotFound, Conflict, Forbidden, InvalidTransition, VisitNotFound
from labflow.models.home_visit import HomeVisit, VisitStatus
from labflow.models.order import OrderStatus
from labflow.models.user import User, UserRole
from labflow.services.authz import can_advance_visit
from labflow.services.notifications import NotificationEvent
from labflow.services.order_ledger import OrderLedger

logger = structlog.get_logger()


VISIT_TRANSITIONS: Dict[VisitStatus, FrozenSet[VisitStatus]] = {
    VisitStatus.SCHEDULED: frozenset({VisitStatus.IN_PROGRESS, VisitStatus.CANCELLED}),
    VisitStatus.IN_PROGRESS: frozenset({VisitStatus.COMPLETED, VisitStatus.CANCELLED}),
    VisitStatus.COMPLETED: frozenset(),
    VisitStatus.CANCELLED: frozenset(),
}

# Order status each visit status drives the order to. SCHEDULED drives nothing.
VISIT_ORDER_CASCADE: Dict[VisitStatus, OrderStatus] = {
    VisitStatus.IN_PROGRESS: OrderStatus.SAMPLE_COLLECTION_SCHEDULED,
    VisitStatus.COMPLETED: OrderStatus.SAMPLE_COLLECTED,
    VisitStatus.CANCELLED: OrderStatus.CANCELLED,
}

TERMINAL_VISIT_STATUSES = frozenset({VisitStatus.COMPLETED, VisitStatus.CANCELLED})


class SchedulingDispatcher:
    """Assigns agents to home visits and advances visit status"""

    def __init__(self, ledger: OrderLedger):
        self.ledger = ledger
        self.db: AsyncSession = ledger.db

    async def get_visit(self, visit_id: uuid.UUID) -> HomeVisit:
        result = await self.db.execute(
            select(HomeVisit)
            .where(HomeVisit.id == visit_id)
            .options(selectinload(HomeVisit.agent), selectinload(HomeVisit.order))
            .execution_options(populate_existing=True)
        )
        visit = result.scalar_one_or_none()
        if visit is None:
            raise VisitNotFound(visit_id=str(visit_id))
        return visit

    async def list_visits(
        self,
        agent_id: Optional[uuid.UUID] = None,
        status: Optional[VisitStatus] = None,
    ) -> Sequence[HomeVisit]:
        query = select(HomeVisit).options(selectinload(HomeVisit.agent), selectinload(HomeVisit.order))
        if agent_id is not None:
            query = query.where(HomeVisit.agent_id == agent_id)
        if status is not None:
            query = query.where(HomeVisit.status == status)
        result = await self.db.execute(
            query.order_by(HomeVisit.scheduled_date, HomeVisit.scheduled_time)
        )
        return result.scalars().all()

    async def list_agents(self) -> Sequence[User]:
        result = await self.db.execute(
            select(User)
            .where(User.role == UserRole.HOME_VISIT_AGENT, User.is_active == True)
            .order_by(User.name)
        )
        return result.scalars().all()

    async def assign(
        self,
        visit_id: uuid.UUID,
        agent_id: uuid.UUID,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> HomeVisit:
        try:
            visit = await self.get_visit(visit_id)

            result = await self.db.execute(
                select(User).where(
                    User.id == agent_id,
                    User.role == UserRole.HOME_VISIT_AGENT,
                    User.is_active == True,
                )
            )
            agent = result.scalar_one_or_none()
            if agent is None:
                raise AgentNotFound(agent_id=str(agent_id))

            if visit.status in TERMINAL_VISIT_STATUSES:
                raise Conflict(
                    f"Home visit is already {visit.status.value}",
                    visit_id=str(visit.id),
                    status=visit.status.value,
                )

            self._check_version(visit, expected_version)

            values = {"agent_id": agent.id}
            if notes is not None:
                values["notes"] = notes
            await self._write_visit(visit, values)

            await self.db.flush()
            visit = await self.get_visit(visit.id)

            self.ledger.queue_notification(NotificationEvent.HOME_VISIT_SCHEDULED, {
                "visit_id": str(visit.id),
                "order_id": str(visit.order_id),
                "agent_id": str(agent.id),
                "agent_name": agent.name,
                "agent_phone": agent.phone,
                "scheduled_date": visit.scheduled_date.isoformat(),
                "scheduled_time": visit.scheduled_time,
            })
            await self.ledger.commit()
        except Exception:
            await self.ledger.rollback()
            raise

        logger.info("Agent assigned", visit_id=str(visit.id), agent_id=str(agent.id))
        return visit

    async def advance(
        self,
        visit_id: uuid.UUID,
        new_status: VisitStatus,
        actor: User,
        notes: Optional[str] = None,
        collection_otp: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> HomeVisit:
        """
        Move a visit to ``new_status`` and cascade the matching order transition.

        Only administrators or the agent assigned to the visit may do this.
        """
        try:
            visit = await self.get_visit(visit_id)

            if not can_advance_visit(actor, visit):
                raise Forbidden("You are not assigned to this home visit", visit_id=str(visit.id))

            self._check_version(visit, expected_version)

            previous = visit.status
            if new_status not in VISIT_TRANSITIONS[previous]:
                raise InvalidTransition(previous.value, new_status.value, entity="home visit")

            values = {"status": new_status}
            if notes:
                values["notes"] = notes
            if collection_otp:
                values["collection_otp"] = collection_otp
            if new_status == VisitStatus.COMPLETED:
                values["collection_time"] = datetime.utcnow()
            await self._write_visit(visit, values)

            target = VISIT_ORDER_CASCADE.get(new_status)
            if target is not None and visit.order.status != target:
                await self.ledger.apply_transition(
                    visit.order_id,
                    target,
                    actor.id,
                    notes=f"Home visit status changed to {new_status.value}",
                )

            await self.db.flush()
            visit = await self.get_visit(visit.id)
            await self.ledger.commit()
        except Exception:
            await self.ledger.rollback()
            raise

        logger.info(
            "Home visit status changed",
            visit_id=str(visit.id),
            from_status=previous.value,
            to_status=new_status.value,
            actor_id=str(actor.id),
        )
        return visit

    @staticmethod
    def _check_version(visit: HomeVisit, expected_version: Optional[int]) -> None:
        if expected_version is not None and visit.version != expected_version:
            raise Conflict(
                visit_id=str(visit.id),
                expected_version=expected_version,
                current_version=visit.version,
            )

    async def _write_visit(self, visit: HomeVisit, values: dict) -> None:
        result = await self.db.execute(
            update(HomeVisit)
            .where(
                HomeVisit.id == visit.id,
                HomeVisit.version == visit.version,
                HomeVisit.status == visit.status,
            )
            .values(
                version=HomeVisit.version + 1,
                updated_at=datetime.utcnow(),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Conflict("Home visit was modified by another request", visit_id=str(visit.id))
