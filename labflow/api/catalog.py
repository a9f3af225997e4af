"""Catalog API endpoints (read-only, public)"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from labflow.database import get_db
from labflow.errors import CatalogItemNotFound
from labflow.models.catalog import CatalogKind, Category, LabTest
from labflow.schemas.catalog import CategoryResponse, LabTestListResponse, LabTestResponse

router = APIRouter()

SELLING_PRICE = func.coalesce(LabTest.discount_price_paise, LabTest.price_paise)

SORT_ORDERS = {
    "name": (LabTest.name,),
    "price-low": (SELLING_PRICE, LabTest.name),
    "price-high": (SELLING_PRICE.desc(), LabTest.name),
    "newest": (LabTest.created_at.desc(),),
}


@router.get("/tests", response_model=LabTestListResponse)
async def list_tests(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=50),
    search: Optional[str] = Query(None, max_length=100),
    category_id: Optional[UUID] = None,
    kind: Optional[CatalogKind] = None,
    sort_by: str = Query("name", pattern="^(name|price-low|price-high|newest)$"),
    db: AsyncSession = Depends(get_db),
):
    """Browse active tests and packages"""
    conditions = [LabTest.is_active == True]

    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(LabTest.name.ilike(pattern), LabTest.description.ilike(pattern)))

    if category_id:
        conditions.append(LabTest.category_id == category_id)

    if kind:
        conditions.append(LabTest.kind == kind)

    total = (await db.execute(select(func.count(LabTest.id)).where(*conditions))).scalar()

    result = await db.execute(
        select(LabTest)
        .where(*conditions)
        .options(selectinload(LabTest.category))
        .order_by(*SORT_ORDERS[sort_by])
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return LabTestListResponse(
        items=[LabTestResponse.model_validate(test) for test in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/tests/{slug}", response_model=LabTestResponse)
async def get_test(slug: str, db: AsyncSession = Depends(get_db)):
    """Get an active test by slug"""
    result = await db.execute(
        select(LabTest)
        .where(LabTest.slug == slug, LabTest.is_active == True)
        .options(selectinload(LabTest.category))
    )
    test = result.scalar_one_or_none()

    if not test:
        raise CatalogItemNotFound(slug=slug)

    return test


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    include_test_count: bool = False,
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Active categories by name, optionally with their active test counts"""
    query = select(Category).where(Category.is_active == True).order_by(Category.name)
    if limit:
        query = query.limit(limit)

    categories = (await db.execute(query)).scalars().all()
    response = [CategoryResponse.model_validate(category) for category in categories]

    if include_test_count and categories:
        result = await db.execute(
            select(LabTest.category_id, func.count(LabTest.id))
            .where(
                LabTest.is_active == True,
                LabTest.category_id.in_([category.id for category in categories]),
            )
            .group_by(LabTest.category_id)
        )
        counts = dict(result.all())
        for item in response:
            item.test_count = counts.get(item.id, 0)

    return response
