from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.api.deps import get_current_user
from planboard.core.permissions import SYSTEM_ROLE_LABELS, Role
from planboard.core.rate_limit import limiter
from planboard.core.security import create_access_token, verify_password
from planboard.database import get_db
from planboard.models.user import User
from planboard.schemas.auth import LoginRequest, TokenResponse, UserResponse
from planboard.schemas.permissions import CustomRoleSummary, PermissionSnapshot
from planboard.services.permission_service import PermissionService

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _role_label(role: str) -> str | None:
    try:
        return SYSTEM_ROLE_LABELS[Role(role)]
    except ValueError:
        return None


def user_response(user: User) -> UserResponse:
    custom = user.custom_role
    return UserResponse(
        id=str(user.id),
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        role_label=_role_label(user.role),
        organization_id=str(user.organization_id),
        is_active=user.is_active,
        custom_role=(
            CustomRoleSummary(
                id=str(custom.id), name=custom.name, permissions=list(custom.permissions or [])
            )
            if custom is not None and custom.is_active
            else None
        ),
    )


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
async def login(request: Request, body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()
    if not user or not user.password_hash:
        raise HTTPException(401, "Invalid credentials")

    if not verify_password(body.password, user.password_hash):
        logger.info("Failed login attempt", extra={"user_id": str(user.id)})
        raise HTTPException(401, "Invalid credentials")

    if not user.is_active:
        raise HTTPException(403, "Account disabled")

    return TokenResponse(access_token=create_access_token(user.id, user.role))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user_response(user)


@router.get("/permissions", response_model=PermissionSnapshot, response_model_by_alias=True)
async def permissions(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Resolved permission snapshot for the current user, consumed by the client store."""
    return await PermissionService.build_snapshot(db, user.id)
