"""Project listing and explicit project-role assignment routes."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.api.deps import get_current_user, require_project_access, require_project_permission
from planboard.core.permissions import Permission, ProjectRole
from planboard.database import get_db
from planboard.models.project import Project, ProjectRoleAssignment
from planboard.models.user import User
from planboard.services.permission_resolver import derive_project_role
from planboard.services.permission_service import PermissionService

router = APIRouter(prefix="/projects", tags=["projects"])
logger = logging.getLogger(__name__)


class ProjectRoleAssign(BaseModel):
    role: ProjectRole


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _project_response(project: Project, my_role: str | None = None) -> dict:
    return {
        "id": str(project.id),
        "name": project.name,
        "description": project.description,
        "organization_id": str(project.organization_id),
        "created_by": str(project.created_by),
        "client_id": str(project.client_id) if project.client_id else None,
        "archived": project.archived,
        "team_members": [str(m.id) for m in project.team_members],
        "my_role": my_role,
    }


async def _load_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
    result = await db.execute(
        select(Project)
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(404, "Project not found")
    return project


def _related_user_ids(project: Project) -> list[uuid.UUID]:
    ids: list[uuid.UUID] = [project.created_by]
    if project.client_id:
        ids.append(project.client_id)
    ids.extend(m.id for m in project.team_members)
    ids.extend(a.user_id for a in project.role_assignments)
    return list(dict.fromkeys(ids))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("")
async def list_projects(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Projects the current user can access, with the user's effective project role."""
    snapshot = await PermissionService.build_snapshot(db, user.id)
    if not snapshot.accessible_projects:
        return []
    ids = [uuid.UUID(pid) for pid in snapshot.accessible_projects]
    result = await db.execute(select(Project).where(Project.id.in_(ids)))
    by_id = {str(p.id): p for p in result.scalars().all()}
    return [
        _project_response(by_id[pid], snapshot.project_roles.get(pid))
        for pid in snapshot.accessible_projects
        if pid in by_id
    ]


@router.get("/{project_id}")
async def get_project(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_project_access),
):
    project = await _load_project(db, project_id)
    return _project_response(project, derive_project_role(user.id, project))


@router.get("/{project_id}/roles")
async def list_project_roles(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_project_access),
):
    """Effective project role of every user related to the project."""
    project = await _load_project(db, project_id)
    explicit = {a.user_id for a in project.role_assignments}
    return [
        {
            "user_id": str(uid),
            "role": derive_project_role(uid, project),
            "explicit": uid in explicit,
        }
        for uid in _related_user_ids(project)
    ]


@router.put("/{project_id}/roles/{user_id}")
async def assign_project_role(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    body: ProjectRoleAssign,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_project_permission(Permission.PROJECT_MANAGE_TEAM)),
):
    """Set an explicit project role. Unrelated users are added to the team."""
    project = await _load_project(db, project_id)

    result = await db.execute(
        select(User).where(User.id == user_id, User.organization_id == project.organization_id)
    )
    target = result.scalar_one_or_none()
    if not target:
        raise HTTPException(404, "User not found")

    assignment = next((a for a in project.role_assignments if a.user_id == user_id), None)
    if assignment is None:
        assignment = ProjectRoleAssignment(
            user_id=user_id, role=body.role.value, assigned_by=current_user.id
        )
        project.role_assignments.append(assignment)
    else:
        assignment.role = body.role.value
        assignment.assigned_by = current_user.id

    is_member = any(m.id == user_id for m in project.team_members)
    if not is_member and user_id not in (project.created_by, project.client_id):
        project.team_members.append(target)

    await db.commit()
    logger.info(
        "Project role %s assigned",
        body.role.value,
        extra={"user_id": str(user_id), "project_id": str(project_id)},
    )
    return {"project_id": str(project_id), "user_id": str(user_id), "role": body.role.value}


@router.delete("/{project_id}/roles/{user_id}", status_code=204)
async def remove_project_role(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_project_permission(Permission.PROJECT_MANAGE_TEAM)),
):
    """Drop the explicit assignment; the user falls back to the derived role."""
    project = await _load_project(db, project_id)
    assignment = next((a for a in project.role_assignments if a.user_id == user_id), None)
    if assignment is None:
        raise HTTPException(404, "No explicit role assignment for this user")
    project.role_assignments.remove(assignment)
    await db.commit()
