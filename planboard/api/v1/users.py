from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.api.deps import require_permission
from planboard.api.v1.auth import user_response
from planboard.core.permissions import Permission
from planboard.database import get_db
from planboard.models.custom_role import CustomRole
from planboard.models.user import User
from planboard.schemas.auth import UserResponse

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


class CustomRoleLink(BaseModel):
    custom_role_id: uuid.UUID | None = None


@router.put("/{user_id}/custom-role", response_model=UserResponse)
async def set_custom_role(
    user_id: uuid.UUID,
    body: CustomRoleLink,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.USER_MANAGE_ROLES)),
):
    """Link a custom role to a user, or unlink it with ``custom_role_id: null``."""
    result = await db.execute(
        select(User).where(
            User.id == user_id, User.organization_id == current_user.organization_id
        )
    )
    target = result.scalar_one_or_none()
    if not target:
        raise HTTPException(404, "User not found")

    custom = None
    if body.custom_role_id is not None:
        role_result = await db.execute(
            select(CustomRole).where(
                CustomRole.id == body.custom_role_id,
                CustomRole.organization_id == current_user.organization_id,
                CustomRole.is_active == True,  # noqa: E712
            )
        )
        custom = role_result.scalar_one_or_none()
        if not custom:
            raise HTTPException(404, "Custom role not found")

    target.custom_role = custom
    await db.commit()
    logger.info(
        "Custom role %s for user %s",
        "linked" if custom else "unlinked",
        target.id,
        extra={"user_id": str(target.id)},
    )
    return user_response(target)
