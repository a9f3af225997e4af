"""Authentication API endpoints"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from fastapi.security import APIKeyCookie
from jose import JWTError, jwt
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.api.deps import get_notifier
from labflow.config import settings
from labflow.database import get_db
from labflow.errors import EmailInUse, Forbidden, Unauthenticated
from labflow.models.user import Capability, User, UserRole
from labflow.schemas.auth import (
    OTPRequest,
    OTPRequestResponse,
    OTPVerify,
    OTPVerifyResponse,
    ProfileUpdate,
    UserResponse,
)
from labflow.services import authz
from labflow.services.notifications import NotificationEvent, Notifier
from labflow.services.otp import OTPAuthGate, get_otp_gate

logger = structlog.get_logger()

router = APIRouter()

# Session cookie scheme
cookie_scheme = APIKeyCookie(name=settings.session_cookie_name, auto_error=False)


def create_session_token(user: User) -> str:
    """Create signed session token"""
    expire = datetime.utcnow() + timedelta(days=settings.session_expire_days)
    payload = {
        "sub": str(user.id),
        "phone": user.phone,
        "role": user.role.value,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_expire_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


async def get_current_user(
    token: Optional[str] = Depends(cookie_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from the session cookie"""
    if not token:
        raise Unauthenticated()

    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
        user_id = UUID(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise Unauthenticated("Invalid or expired session")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise Unauthenticated("Invalid or expired session")

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Verify user is active"""
    if not current_user.is_active:
        raise Forbidden("User account is disabled")
    return current_user


def require_capability(capability: Capability):
    """Dependency factory for capability-based access control"""
    async def capability_checker(current_user: User = Depends(get_current_active_user)) -> User:
        authz.require_capability(current_user, capability)
        return current_user
    return capability_checker


@router.post("/otp/request", response_model=OTPRequestResponse)
async def request_otp(
    request: OTPRequest,
    gate: OTPAuthGate = Depends(get_otp_gate),
    notifier: Notifier = Depends(get_notifier),
):
    """Issue a login code for a phone number"""
    code = await gate.request(request.phone)
    await notifier.notify(NotificationEvent.OTP_REQUESTED, {"phone": request.phone, "otp": code})

    return OTPRequestResponse(otp=None if settings.is_production else code)


@router.post("/otp/verify", response_model=OTPVerifyResponse)
async def verify_otp(
    request: OTPVerify,
    response: Response,
    gate: OTPAuthGate = Depends(get_otp_gate),
    db: AsyncSession = Depends(get_db),
):
    """Verify a login code, provisioning the user on first login"""
    await gate.verify(request.phone, request.otp)

    result = await db.execute(select(User).where(User.phone == request.phone))
    user = result.scalar_one_or_none()

    is_new_user = user is None
    if is_new_user:
        user = User(
            phone=request.phone,
            name=f"User {request.phone[-4:]}",
            role=UserRole.CUSTOMER,
            is_active=True,
        )
        db.add(user)
    elif not user.is_active:
        raise Forbidden("User account is disabled")

    # Update last login
    user.last_login = datetime.utcnow()
    await db.commit()
    await db.refresh(user)

    set_session_cookie(response, create_session_token(user))

    logger.info("User logged in", user_id=str(user.id), new_user=is_new_user)
    return OTPVerifyResponse(
        user=UserResponse.model_validate(user),
        requires_profile=is_new_user or not user.email,
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user),
):
    """Get current user information"""
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Complete the caller's profile"""
    if request.email:
        result = await db.execute(
            select(User).where(User.email == request.email, User.id != current_user.id)
        )
        if result.scalar_one_or_none() is not None:
            raise EmailInUse(email=request.email)

    current_user.name = request.name
    current_user.email = request.email
    await db.commit()
    await db.refresh(current_user)
    return current_user


@router.post("/logout")
async def logout(
    response: Response,
    current_user: User = Depends(get_current_active_user),
):
    """Clear the session cookie"""
    response.delete_cookie(settings.session_cookie_name, path="/")
    return {"message": "Successfully logged out"}
