"""Address book API endpoints"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.api.auth import get_current_active_user
from labflow.database import get_db
from labflow.errors import AddressInUse, AddressNotFound, LastAddress
from labflow.models.order import Order
from labflow.models.user import Address, User
from labflow.schemas.address import AddressCreate, AddressResponse, AddressUpdate

logger = structlog.get_logger()

router = APIRouter()


async def _get_owned_address(db: AsyncSession, address_id: UUID, user: User) -> Address:
    """Addresses of other users are reported as missing"""
    result = await db.execute(
        select(Address).where(Address.id == address_id, Address.user_id == user.id)
    )
    address = result.scalar_one_or_none()

    if not address:
        raise AddressNotFound(address_id=str(address_id))

    return address


async def _clear_default(db: AsyncSession, user: User) -> None:
    await db.execute(
        update(Address)
        .where(Address.user_id == user.id, Address.is_default == True)
        .values(is_default=False)
    )


@router.get("", response_model=List[AddressResponse])
async def list_addresses(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's addresses, default first"""
    result = await db.execute(
        select(Address)
        .where(Address.user_id == current_user.id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
    )
    return result.scalars().all()


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(
    address_data: AddressCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Add an address; the first one always becomes the default"""
    existing = (
        await db.execute(select(func.count(Address.id)).where(Address.user_id == current_user.id))
    ).scalar()

    is_default = address_data.is_default or existing == 0
    if is_default:
        await _clear_default(db, current_user)

    address = Address(
        user_id=current_user.id,
        **address_data.model_dump(exclude={"is_default"}),
        is_default=is_default,
    )
    db.add(address)
    await db.commit()
    await db.refresh(address)

    logger.info("Address created", address_id=str(address.id), user_id=str(current_user.id))
    return address


@router.get("/{address_id}", response_model=AddressResponse)
async def get_address(
    address_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the caller's addresses"""
    return await _get_owned_address(db, address_id, current_user)


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: UUID,
    address_data: AddressUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Update an address"""
    address = await _get_owned_address(db, address_id, current_user)

    changes = address_data.model_dump(exclude_unset=True, exclude_none=True)
    if changes.get("is_default"):
        await _clear_default(db, current_user)

    for field, value in changes.items():
        setattr(address, field, value)

    await db.commit()
    await db.refresh(address)
    return address


@router.put("/{address_id}/default", response_model=AddressResponse)
async def set_default_address(
    address_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Make an address the default in one transaction"""
    address = await _get_owned_address(db, address_id, current_user)

    await _clear_default(db, current_user)
    address.is_default = True

    await db.commit()
    await db.refresh(address)
    return address


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(
    address_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete an address; the oldest remaining one inherits the default"""
    address = await _get_owned_address(db, address_id, current_user)

    count = (
        await db.execute(select(func.count(Address.id)).where(Address.user_id == current_user.id))
    ).scalar()
    if count <= 1:
        raise LastAddress(address_id=str(address_id))

    used = (
        await db.execute(select(func.count(Order.id)).where(Order.address_id == address.id))
    ).scalar()
    if used:
        raise AddressInUse(address_id=str(address_id), orders=used)

    was_default = address.is_default
    await db.delete(address)
    await db.flush()

    if was_default:
        result = await db.execute(
            select(Address)
            .where(Address.user_id == current_user.id)
            .order_by(Address.created_at)
            .limit(1)
        )
        successor = result.scalar_one_or_none()
        if successor:
            successor.is_default = True

    await db.commit()
    logger.info("Address deleted", address_id=str(address_id), user_id=str(current_user.id))
