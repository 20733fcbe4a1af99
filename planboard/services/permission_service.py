"""Centralized authorization service. All route handlers should use this.

Every call re-resolves the user's permissions from the database through the
request's session; nothing is cached server-side, so role or membership
changes take effect on the next request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.errors import PermissionDenied
from planboard.core.metrics import authz_decisions_total
from planboard.core.permissions import (
    ADMIN_TIER_ROLES,
    Permission,
    PermissionScope,
    get_permission_scope,
    permission_key,
)
from planboard.models.project import Project
from planboard.schemas.permissions import PermissionSnapshot
from planboard.services.permission_resolver import (
    PermissionResolver,
    UserPermissions,
    as_uuid,
    normalize_id,
)

logger = logging.getLogger(__name__)

_CATALOG_ORDER = {p.value: i for i, p in enumerate(Permission)}


def _ordered(permissions: Iterable[str]) -> list[str]:
    """Catalog order first, unknown keys after in alphabetical order."""
    return sorted(permissions, key=lambda p: (_CATALOG_ORDER.get(p, len(_CATALOG_ORDER)), p))


def _record(operation: str, allowed: bool) -> bool:
    authz_decisions_total.labels(operation=operation, result="allow" if allowed else "deny").inc()
    return allowed


class PermissionService:
    """Boolean checks (``has_*`` / ``can_*``) and enforcing guards (``require_*``)."""

    # ------------------------------------------------------------------
    # Internal evaluation over a resolved snapshot
    # ------------------------------------------------------------------

    @staticmethod
    async def project_in_organization(
        db: AsyncSession, project_id: Any, organization_id: str
    ) -> bool:
        pid = as_uuid(project_id)
        org = as_uuid(organization_id)
        if pid is None or org is None:
            return False
        result = await db.execute(
            select(Project.id).where(Project.id == pid, Project.organization_id == org)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def _evaluate(
        db: AsyncSession,
        perms: UserPermissions,
        permission: Permission | str,
        project_id: Any = None,
    ) -> bool:
        key = permission_key(permission)
        scope = get_permission_scope(key)

        if scope == PermissionScope.GLOBAL:
            return key in perms.global_permissions
        if scope == PermissionScope.OWN:
            return True

        pid = normalize_id(project_id)
        if pid is None:
            return False
        if key in perms.project_permissions.get(pid, frozenset()):
            return True
        if key in perms.global_permissions:
            return await PermissionService.project_in_organization(
                db, pid, perms.organization_id
            )
        return False

    @staticmethod
    async def _can_access(db: AsyncSession, perms: UserPermissions, project_id: Any) -> bool:
        pid = normalize_id(project_id)
        if pid is None:
            return False
        if pid in perms.project_permissions:
            return True
        if perms.user_role in ADMIN_TIER_ROLES:
            return await PermissionService.project_in_organization(
                db, pid, perms.organization_id
            )
        return False

    @staticmethod
    async def _accessible(db: AsyncSession, perms: UserPermissions) -> list[str]:
        if perms.user_role not in ADMIN_TIER_ROLES:
            return perms.project_ids
        org = as_uuid(perms.organization_id)
        result = await db.execute(
            select(Project.id)
            .where(Project.organization_id == org)
            .order_by(Project.created_at, Project.id)
        )
        accessible = [str(pid) for pid in result.scalars().all()]
        # Direct project relationships outside the organization still count
        seen = set(accessible)
        accessible.extend(pid for pid in perms.project_ids if pid not in seen)
        return accessible

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    async def get_user_permissions(db: AsyncSession, user_id: Any) -> UserPermissions:
        return await PermissionResolver.resolve(db, user_id)

    @staticmethod
    async def has_permission(
        db: AsyncSession,
        user_id: Any,
        permission: Permission | str,
        project_id: Any = None,
    ) -> bool:
        """Check a single permission.

        Global-scope permissions come only from the organization role and the
        custom role. Own-scope permissions are always granted. Project-scope
        permissions need a ``project_id``: they are granted by the derived
        project role, or by a global grant when the project belongs to the
        user's organization.
        """
        perms = await PermissionResolver.resolve(db, user_id)
        allowed = await PermissionService._evaluate(db, perms, permission, project_id)
        return _record("has_permission", allowed)

    @staticmethod
    async def has_any_permission(
        db: AsyncSession,
        user_id: Any,
        permissions: Iterable[Permission | str],
        project_id: Any = None,
    ) -> bool:
        perms = await PermissionResolver.resolve(db, user_id)
        for permission in permissions:
            if await PermissionService._evaluate(db, perms, permission, project_id):
                return _record("has_any_permission", True)
        return _record("has_any_permission", False)

    @staticmethod
    async def has_all_permissions(
        db: AsyncSession,
        user_id: Any,
        permissions: Iterable[Permission | str],
        project_id: Any = None,
    ) -> bool:
        perms = await PermissionResolver.resolve(db, user_id)
        for permission in permissions:
            if not await PermissionService._evaluate(db, perms, permission, project_id):
                return _record("has_all_permissions", False)
        return _record("has_all_permissions", True)

    @staticmethod
    async def can_access_project(db: AsyncSession, user_id: Any, project_id: Any) -> bool:
        """Admin tier sees every project of its organization; others need a relationship."""
        perms = await PermissionResolver.resolve(db, user_id)
        allowed = await PermissionService._can_access(db, perms, project_id)
        return _record("can_access_project", allowed)

    @staticmethod
    async def can_manage_project(db: AsyncSession, user_id: Any, project_id: Any) -> bool:
        perms = await PermissionResolver.resolve(db, user_id)
        allowed = await PermissionService._evaluate(
            db, perms, Permission.PROJECT_UPDATE, project_id
        )
        return _record("can_manage_project", allowed)

    @staticmethod
    async def get_accessible_projects(db: AsyncSession, user_id: Any) -> list[str]:
        perms = await PermissionResolver.resolve(db, user_id)
        return await PermissionService._accessible(db, perms)

    @staticmethod
    async def filter_projects_by_access(
        db: AsyncSession, user_id: Any, projects: Iterable[Any]
    ) -> list[Any]:
        """Keep the accessible entries of ``projects`` in their input order.

        Entries may be ids or project objects; they are returned unchanged.
        """
        perms = await PermissionResolver.resolve(db, user_id)
        accessible = set(await PermissionService._accessible(db, perms))
        return [p for p in projects if normalize_id(p) in accessible]

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    @staticmethod
    def _deny(
        operation: str,
        user_id: Any,
        permissions: Iterable[Permission | str] = (),
        project_id: Any = None,
        reason: str | None = None,
    ) -> PermissionDenied:
        keys = [permission_key(p) for p in permissions]
        logger.warning(
            "Authorization denied: %s user=%s permissions=%s project=%s",
            operation,
            normalize_id(user_id),
            ",".join(keys) or "-",
            normalize_id(project_id) or "-",
            extra={
                "operation": operation,
                "user_id": normalize_id(user_id),
                "project_id": normalize_id(project_id),
                "permission": ",".join(keys) or None,
            },
        )
        return PermissionDenied(keys, reason=reason)

    @staticmethod
    async def require_permission(
        db: AsyncSession,
        user_id: Any,
        permission: Permission | str,
        project_id: Any = None,
    ) -> None:
        """Raise 403 if the permission check fails."""
        if not await PermissionService.has_permission(db, user_id, permission, project_id):
            raise PermissionService._deny(
                "require_permission", user_id, [permission], project_id
            )

    @staticmethod
    async def require_any_permission(
        db: AsyncSession,
        user_id: Any,
        permissions: Iterable[Permission | str],
        project_id: Any = None,
    ) -> None:
        permissions = list(permissions)
        if not await PermissionService.has_any_permission(db, user_id, permissions, project_id):
            raise PermissionService._deny(
                "require_any_permission", user_id, permissions, project_id
            )

    @staticmethod
    async def require_all_permissions(
        db: AsyncSession,
        user_id: Any,
        permissions: Iterable[Permission | str],
        project_id: Any = None,
    ) -> None:
        permissions = list(permissions)
        perms = await PermissionResolver.resolve(db, user_id)
        missing = [
            p
            for p in permissions
            if not await PermissionService._evaluate(db, perms, p, project_id)
        ]
        _record("require_all_permissions", not missing)
        if missing:
            raise PermissionService._deny(
                "require_all_permissions", user_id, missing, project_id
            )

    @staticmethod
    async def require_project_access(db: AsyncSession, user_id: Any, project_id: Any) -> None:
        if not await PermissionService.can_access_project(db, user_id, project_id):
            raise PermissionService._deny(
                "require_project_access",
                user_id,
                project_id=project_id,
                reason="no access to project",
            )

    @staticmethod
    async def require_project_management(
        db: AsyncSession, user_id: Any, project_id: Any
    ) -> None:
        if not await PermissionService.can_manage_project(db, user_id, project_id):
            raise PermissionService._deny(
                "require_project_management",
                user_id,
                [Permission.PROJECT_UPDATE],
                project_id,
            )

    # ------------------------------------------------------------------
    # Snapshot served to the client
    # ------------------------------------------------------------------

    @staticmethod
    async def build_snapshot(db: AsyncSession, user_id: Any) -> PermissionSnapshot:
        perms = await PermissionResolver.resolve(db, user_id)
        return PermissionSnapshot(
            user_id=perms.user_id,
            global_permissions=_ordered(perms.global_permissions),
            project_permissions={
                pid: _ordered(granted) for pid, granted in perms.project_permissions.items()
            },
            project_roles=dict(perms.project_roles),
            user_role=perms.user_role,
            accessible_projects=await PermissionService._accessible(db, perms),
        )
