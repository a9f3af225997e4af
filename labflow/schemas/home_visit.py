"""Home visit schemas"""

from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from labflow.models.home_visit import VisitStatus
from labflow.schemas.order import HomeVisitResponse


class AssignRequest(BaseModel):
    """Assign a field agent"""
    agent_id: UUID
    notes: Optional[str] = None
    version: Optional[int] = None


class VisitStatusUpdate(BaseModel):
    """Advance a home visit"""
    status: VisitStatus
    version: int  # Version the caller last read
    notes: Optional[str] = None
    collection_otp: Optional[str] = Field(None, max_length=10)


class AgentResponse(BaseModel):
    """Field agent summary"""
    id: UUID
    name: Optional[str]
    phone: str

    class Config:
        from_attributes = True


class HomeVisitDetail(HomeVisitResponse):
    """Home visit with its agent and order number, for staff only"""
    agent: Optional[AgentResponse] = None
    order_number: Optional[str] = None
    collection_otp: Optional[str] = None
