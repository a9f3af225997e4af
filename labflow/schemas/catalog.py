"""Catalog schemas"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel

from labflow.models.catalog import CatalogKind


class CategorySummary(BaseModel):
    """Category reference embedded in a test"""
    id: UUID
    name: str
    slug: str

    class Config:
        from_attributes = True


class CategoryResponse(CategorySummary):
    """Category listing entry"""
    description: Optional[str]
    icon: Optional[str]
    test_count: Optional[int] = None  # Active tests, when requested


class LabTestResponse(BaseModel):
    """Orderable test or package"""
    id: UUID
    name: str
    slug: str
    description: Optional[str]
    kind: CatalogKind
    price_paise: int
    discount_price_paise: Optional[int]
    effective_price_paise: int
    preparation_instructions: Optional[str]
    report_time: Optional[str]
    category: Optional[CategorySummary]
    created_at: datetime

    class Config:
        from_attributes = True


class LabTestListResponse(BaseModel):
    """Paginated catalog"""
    items: List[LabTestResponse]
    total: int
    page: int
    page_size: int
