"""Report schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel


class ReportResponse(BaseModel):
    """Report metadata"""
    id: UUID
    order_id: UUID
    uploaded_by: UUID
    file_name: str
    content_type: str
    file_size: int
    notes: Optional[str]
    is_delivered: bool
    delivered_at: Optional[datetime]
    uploaded_at: datetime

    class Config:
        from_attributes = True
