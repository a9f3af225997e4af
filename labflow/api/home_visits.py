"""Home visit API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from labflow.api.auth import get_current_active_user, require_capability
from labflow.api.deps import get_ledger
from labflow.errors import Forbidden
from labflow.models.home_visit import VisitStatus
from labflow.models.user import Capability, User
from labflow.schemas.home_visit import (
    AgentResponse,
    AssignRequest,
    HomeVisitDetail,
    VisitStatusUpdate,
)
from labflow.services.order_ledger import OrderLedger
from labflow.services.scheduling import SchedulingDispatcher

router = APIRouter()


async def get_dispatcher(ledger: OrderLedger = Depends(get_ledger)) -> SchedulingDispatcher:
    return SchedulingDispatcher(ledger)


@router.get("", response_model=List[HomeVisitDetail])
async def list_home_visits(
    status: Optional[VisitStatus] = None,
    current_user: User = Depends(get_current_active_user),
    dispatcher: SchedulingDispatcher = Depends(get_dispatcher),
):
    """List home visits; agents only see visits assigned to them"""
    if current_user.can(Capability.ASSIGN_AGENTS):
        return await dispatcher.list_visits(status=status)
    if current_user.can(Capability.COLLECT_SAMPLES):
        return await dispatcher.list_visits(agent_id=current_user.id, status=status)
    raise Forbidden()


@router.get("/agents", response_model=List[AgentResponse])
async def list_agents(
    current_user: User = Depends(require_capability(Capability.ASSIGN_AGENTS)),
    dispatcher: SchedulingDispatcher = Depends(get_dispatcher),
):
    """List active field agents"""
    return await dispatcher.list_agents()


@router.put("/{visit_id}/assign", response_model=HomeVisitDetail)
async def assign_agent(
    visit_id: UUID,
    request: AssignRequest,
    current_user: User = Depends(require_capability(Capability.ASSIGN_AGENTS)),
    dispatcher: SchedulingDispatcher = Depends(get_dispatcher),
):
    """Assign a field agent to a home visit"""
    return await dispatcher.assign(
        visit_id,
        request.agent_id,
        notes=request.notes,
        expected_version=request.version,
    )


@router.put("/{visit_id}/status", response_model=HomeVisitDetail)
async def update_visit_status(
    visit_id: UUID,
    request: VisitStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    dispatcher: SchedulingDispatcher = Depends(get_dispatcher),
):
    """Advance a home visit; the order follows"""
    return await dispatcher.advance(
        visit_id,
        request.status,
        current_user,
        notes=request.notes,
        collection_otp=request.collection_otp,
        expected_version=request.version,
    )
