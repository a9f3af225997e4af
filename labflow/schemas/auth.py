"""Authentication schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

from labflow.models.user import UserRole

PHONE_PATTERN = r"^\+?[1-9][0-9]{1,14}$"


class OTPRequest(BaseModel):
    """Request a login code"""
    phone: str = Field(..., pattern=PHONE_PATTERN)


class OTPRequestResponse(BaseModel):
    """Login code issued"""
    ok: bool = True
    message: str = "OTP sent successfully"
    otp: Optional[str] = None  # Only outside production


class OTPVerify(BaseModel):
    """Verify a login code"""
    phone: str = Field(..., pattern=PHONE_PATTERN)
    otp: str = Field(..., pattern=r"^[0-9]{6}$")


class TokenPayload(BaseModel):
    """Session token payload"""
    sub: str  # User ID
    phone: str
    role: str
    exp: datetime


class UserResponse(BaseModel):
    """User response"""
    id: UUID
    phone: str
    name: Optional[str]
    email: Optional[str]
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime]

    class Config:
        from_attributes = True


class OTPVerifyResponse(BaseModel):
    """Successful login"""
    user: UserResponse
    requires_profile: bool


class ProfileUpdate(BaseModel):
    """Complete or edit the caller's profile"""
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
