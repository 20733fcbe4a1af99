from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.permissions import Permission
from planboard.core.security import decode_access_token
from planboard.database import get_db
from planboard.models.user import User
from planboard.services.permission_service import PermissionService


async def get_current_user(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = auth[7:]
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user_id = uuid.UUID(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def require_permission(permission: Permission | str):
    """Dependency factory that checks one organization-level permission."""

    async def _check(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        await PermissionService.require_permission(db, user.id, permission)
        return user

    return _check


def require_project_permission(permission: Permission | str):
    """Dependency factory for a permission checked against the ``project_id`` path parameter."""

    async def _check(
        project_id: uuid.UUID,
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        await PermissionService.require_permission(db, user.id, permission, project_id)
        return user

    return _check


async def require_project_access(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    await PermissionService.require_project_access(db, user.id, project_id)
    return user
