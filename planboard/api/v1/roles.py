"""Role listing and organization custom-role management API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.api.deps import get_current_user, require_permission
from planboard.core.permissions import (
    ALL_PERMISSION_KEYS,
    PERMISSION_CATALOG,
    ROLE_PERMISSIONS,
    SYSTEM_ROLE_LABELS,
    Permission,
)
from planboard.database import get_db
from planboard.models.custom_role import CustomRole
from planboard.models.user import User

router = APIRouter(prefix="/roles", tags=["roles"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


def _check_permission_keys(v: list[str]) -> list[str]:
    unknown = set(v) - ALL_PERMISSION_KEYS
    if unknown:
        raise ValueError(f"Unknown permission keys: {', '.join(sorted(unknown))}")
    # de-duplicate, keep first occurrence
    return list(dict.fromkeys(v))


class CustomRoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    permissions: list[str] = []

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: list[str]) -> list[str]:
        return _check_permission_keys(v)


class CustomRoleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    permissions: list[str] | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: list[str] | None) -> list[str] | None:
        if v is not None:
            return _check_permission_keys(v)
        return v


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_RESERVED_NAMES = frozenset(
    {role.value.lower() for role in SYSTEM_ROLE_LABELS}
    | {label.lower() for label in SYSTEM_ROLE_LABELS.values()}
)


def _custom_role_response(role: CustomRole, user_count: int | None = None) -> dict:
    data = {
        "id": str(role.id),
        "name": role.name,
        "description": role.description,
        "permissions": list(role.permissions or []),
        "organization_id": str(role.organization_id),
        "is_active": role.is_active,
        "is_system": False,
        "created_at": role.created_at.isoformat() if role.created_at else None,
        "updated_at": role.updated_at.isoformat() if role.updated_at else None,
    }
    if user_count is not None:
        data["user_count"] = user_count
    return data


async def _get_org_role(db: AsyncSession, role_id: uuid.UUID, user: User) -> CustomRole:
    result = await db.execute(
        select(CustomRole).where(
            CustomRole.id == role_id,
            CustomRole.organization_id == user.organization_id,
            CustomRole.is_active == True,  # noqa: E712
        )
    )
    role = result.scalar_one_or_none()
    if not role:
        raise HTTPException(404, "Custom role not found")
    return role


async def _ensure_name_available(
    db: AsyncSession, name: str, organization_id: uuid.UUID, exclude_id: uuid.UUID | None = None
) -> None:
    if name.lower() in _RESERVED_NAMES:
        raise HTTPException(409, f"'{name}' is reserved for a system role")
    query = select(CustomRole.id).where(
        CustomRole.organization_id == organization_id,
        CustomRole.is_active == True,  # noqa: E712
        func.lower(CustomRole.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.where(CustomRole.id != exclude_id)
    existing = await db.execute(query)
    if existing.first() is not None:
        raise HTTPException(409, f"A custom role named '{name}' already exists")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("")
async def list_roles(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """System roles plus the organization's active custom roles. Any authenticated user."""
    role_counts = await db.execute(
        select(User.role, func.count(User.id))
        .where(User.organization_id == user.organization_id, User.is_active == True)  # noqa: E712
        .group_by(User.role)
    )
    by_role = dict(role_counts.all())

    system = [
        {
            "key": role.value,
            "label": SYSTEM_ROLE_LABELS[role],
            "is_system": True,
            "permissions": [p.value for p in grants],
            "user_count": by_role.get(role.value, 0),
        }
        for role, grants in ROLE_PERMISSIONS.items()
    ]

    result = await db.execute(
        select(CustomRole)
        .where(
            CustomRole.organization_id == user.organization_id,
            CustomRole.is_active == True,  # noqa: E712
        )
        .order_by(CustomRole.name)
    )
    custom_roles = result.scalars().all()

    custom_counts = await db.execute(
        select(User.custom_role_id, func.count(User.id))
        .where(User.custom_role_id.isnot(None), User.is_active == True)  # noqa: E712
        .group_by(User.custom_role_id)
    )
    by_custom = dict(custom_counts.all())

    return {
        "system_roles": system,
        "custom_roles": [
            _custom_role_response(r, user_count=by_custom.get(r.id, 0)) for r in custom_roles
        ],
    }


@router.get("/permissions-schema")
async def permissions_schema(user: User = Depends(get_current_user)):
    """Return the full permission catalog grouped by category."""
    return PERMISSION_CATALOG


@router.post("", status_code=201)
async def create_custom_role(
    body: CustomRoleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission(Permission.USER_MANAGE_ROLES)),
):
    await _ensure_name_available(db, body.name, user.organization_id)

    role = CustomRole(
        name=body.name,
        description=body.description,
        permissions=body.permissions,
        organization_id=user.organization_id,
        created_by=user.id,
        is_active=True,
    )
    db.add(role)
    await db.commit()
    await db.refresh(role)
    return _custom_role_response(role, user_count=0)


@router.patch("/{role_id}")
async def update_custom_role(
    role_id: uuid.UUID,
    body: CustomRoleUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission(Permission.USER_MANAGE_ROLES)),
):
    role = await _get_org_role(db, role_id, user)
    data = body.model_dump(exclude_unset=True)

    if data.get("name") is not None and data["name"].lower() != role.name.lower():
        await _ensure_name_available(db, data["name"], user.organization_id, exclude_id=role.id)

    for field, value in data.items():
        if field == "name" and value is None:
            continue
        if field == "permissions" and value is None:
            continue
        setattr(role, field, value)

    await db.commit()
    await db.refresh(role)
    return _custom_role_response(role)


@router.delete("/{role_id}")
async def delete_custom_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission(Permission.USER_MANAGE_ROLES)),
):
    """Soft-delete a custom role and unlink it from every user holding it."""
    role = await _get_org_role(db, role_id, user)

    unlinked = await db.execute(
        update(User).where(User.custom_role_id == role.id).values(custom_role_id=None)
    )
    role.is_active = False
    await db.commit()

    return {"id": str(role.id), "deleted": True, "affected_users_count": unlinked.rowcount or 0}
