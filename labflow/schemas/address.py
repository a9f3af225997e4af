"""Address schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from labflow.models.user import AddressKind

PINCODE_PATTERN = r"^[0-9]{6}$"


class AddressCreate(BaseModel):
    """Add a sample collection address"""
    kind: AddressKind = AddressKind.HOME
    line1: str = Field(..., min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    landmark: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=PINCODE_PATTERN)
    is_default: bool = False

    class Config:
        str_strip_whitespace = True


class AddressUpdate(BaseModel):
    """Partial address update"""
    kind: Optional[AddressKind] = None
    line1: Optional[str] = Field(None, min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    landmark: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    pincode: Optional[str] = Field(None, pattern=PINCODE_PATTERN)
    is_default: Optional[bool] = None

    class Config:
        str_strip_whitespace = True


class AddressResponse(BaseModel):
    """Address response"""
    id: UUID
    kind: AddressKind
    line1: str
    line2: Optional[str]
    landmark: Optional[str]
    city: str
    state: str
    pincode: str
    is_default: bool
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
