"""Resolve a user's effective permissions from role, custom role and project relationships."""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.core.errors import NotFoundError
from planboard.core.metrics import authz_resolution_duration_seconds
from planboard.core.permissions import (
    ProjectRole,
    get_project_role_permissions,
    get_role_permissions,
    permission_key,
)
from planboard.models.project import Project, project_team_members
from planboard.models.user import User


@dataclass(frozen=True)
class CustomRoleGrant:
    id: str
    name: str
    permissions: tuple[str, ...]


@dataclass
class UserPermissions:
    """Point-in-time permission snapshot. Recomputed on every resolution."""

    user_id: str
    organization_id: str
    user_role: str
    global_permissions: frozenset[str]
    project_permissions: dict[str, frozenset[str]] = field(default_factory=dict)
    project_roles: dict[str, str] = field(default_factory=dict)
    custom_role: CustomRoleGrant | None = None

    @property
    def project_ids(self) -> list[str]:
        return list(self.project_permissions)


# ---------------------------------------------------------------------------
# Identifier normalization
# ---------------------------------------------------------------------------


def normalize_id(value: Any) -> str | None:
    """Reduce any accepted identifier shape to one canonical string.

    Accepts UUIDs, strings, ORM objects exposing ``id`` and mappings with an
    ``id``/``_id`` key. UUID-looking strings are canonicalized so that
    ``"ABC..."`` and ``UUID("abc...")`` compare equal.
    """
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return str(uuid.UUID(text))
        except ValueError:
            return text
    if isinstance(value, Mapping):
        for key in ("id", "_id"):
            if value.get(key) is not None:
                return normalize_id(value[key])
        return None
    for attr in ("id", "_id"):
        inner = getattr(value, attr, None)
        if inner is not None:
            return normalize_id(inner)
    return normalize_id(str(value))


def _assignment_user(entry: Any) -> str | None:
    if isinstance(entry, Mapping):
        return normalize_id(entry.get("user_id", entry.get("user")))
    user_id = getattr(entry, "user_id", None)
    if user_id is None:
        user_id = getattr(entry, "user", None)
    return normalize_id(user_id)


def _assignment_role(entry: Any) -> str | None:
    role = entry.get("role") if isinstance(entry, Mapping) else getattr(entry, "role", None)
    if role is None:
        return None
    return permission_key(role)


def _field(project: Any, *names: str) -> Any:
    for name in names:
        if isinstance(project, Mapping):
            if name in project:
                return project[name]
        elif hasattr(project, name):
            return getattr(project, name)
    return None


# ---------------------------------------------------------------------------
# Project role derivation
# ---------------------------------------------------------------------------


def derive_project_role(user_id: Any, project: Any) -> str:
    """Return the single effective project role of ``user_id`` on ``project``.

    Precedence: explicit assignment > creator > client > team member > viewer.
    ``project`` may be an ORM ``Project`` or a mapping with the same fields.
    """
    uid = normalize_id(user_id)

    assignments: Iterable[Any] = (
        _field(project, "role_assignments", "project_roles", "projectRoles") or ()
    )
    for entry in assignments:
        if _assignment_user(entry) == uid:
            role = _assignment_role(entry)
            if role:
                return role

    if normalize_id(_field(project, "created_by", "createdBy")) == uid:
        return ProjectRole.PROJECT_MANAGER.value

    if normalize_id(_field(project, "client_id", "client")) == uid:
        return ProjectRole.PROJECT_CLIENT.value

    members = _field(project, "team_members", "teamMembers") or ()
    if any(normalize_id(member) == uid for member in members):
        return ProjectRole.PROJECT_MEMBER.value

    return ProjectRole.PROJECT_VIEWER.value


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


def as_uuid(value: Any) -> uuid.UUID | None:
    normalized = normalize_id(value)
    if normalized is None:
        return None
    try:
        return uuid.UUID(normalized)
    except ValueError:
        return None


class PermissionResolver:
    """Computes ``UserPermissions`` from current database state. No caching."""

    @staticmethod
    async def load_user(db: AsyncSession, user_id: Any) -> User:
        uid = as_uuid(user_id)
        user = None
        if uid is not None:
            result = await db.execute(
                select(User)
                .where(User.id == uid)
                .execution_options(populate_existing=True)
            )
            user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    async def load_related_projects(db: AsyncSession, user: User) -> list[Project]:
        """Projects where the user is a team member, the creator or the client."""
        member_of = select(project_team_members.c.project_id).where(
            project_team_members.c.user_id == user.id
        )
        result = await db.execute(
            select(Project)
            .where(
                or_(
                    Project.id.in_(member_of),
                    Project.created_by == user.id,
                    Project.client_id == user.id,
                )
            )
            .order_by(Project.created_at, Project.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    def global_permissions_for(user: User) -> tuple[frozenset[str], CustomRoleGrant | None]:
        granted = {p.value for p in get_role_permissions(user.role)}
        grant = None
        custom = user.custom_role
        if custom is not None and custom.is_active:
            custom_perms = tuple(permission_key(p) for p in (custom.permissions or []))
            granted.update(custom_perms)
            grant = CustomRoleGrant(id=str(custom.id), name=custom.name, permissions=custom_perms)
        return frozenset(granted), grant

    @staticmethod
    async def resolve(db: AsyncSession, user_id: Any) -> UserPermissions:
        start = time.perf_counter()
        try:
            user = await PermissionResolver.load_user(db, user_id)
            global_perms, custom_grant = PermissionResolver.global_permissions_for(user)

            project_permissions: dict[str, frozenset[str]] = {}
            project_roles: dict[str, str] = {}
            for project in await PermissionResolver.load_related_projects(db, user):
                role = derive_project_role(user.id, project)
                key = str(project.id)
                project_roles[key] = role
                project_permissions[key] = frozenset(
                    p.value for p in get_project_role_permissions(role)
                )

            return UserPermissions(
                user_id=str(user.id),
                organization_id=str(user.organization_id),
                user_role=user.role,
                global_permissions=global_perms,
                project_permissions=project_permissions,
                project_roles=project_roles,
                custom_role=custom_grant,
            )
        finally:
            authz_resolution_duration_seconds.observe(time.perf_counter() - start)
