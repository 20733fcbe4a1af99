"""Tests for PermissionService: scope dispatch, organization boundaries,
project access, require_* guards and the client snapshot."""

from __future__ import annotations

import logging
import uuid

import pytest

from planboard.core.errors import NotFoundError, PermissionDenied
from planboard.core.permissions import Permission, ProjectRole
from planboard.services.permission_service import PermissionService
from tests.conftest import (
    assign_project_role,
    create_custom_role,
    create_project,
    create_user,
)

# ---------------------------------------------------------------------------
# Shared setup
# ---------------------------------------------------------------------------


@pytest.fixture
async def env(db, org, other_org, admin_user, pm_user, member_user, viewer_user):
    """Two organizations with projects in each."""
    foreign_admin = await create_user(
        db, organization=other_org, email="admin2@planboard.io", role="admin"
    )
    team_project = await create_project(
        db,
        organization=org,
        created_by=pm_user,
        name="Team Project",
        team_members=[member_user],
    )
    private_project = await create_project(
        db, organization=org, created_by=pm_user, name="Private Project"
    )
    foreign_project = await create_project(
        db, organization=other_org, created_by=foreign_admin, name="Foreign Project"
    )
    return {
        "admin": admin_user,
        "pm": pm_user,
        "member": member_user,
        "viewer": viewer_user,
        "foreign_admin": foreign_admin,
        "team_project": team_project,
        "private_project": private_project,
        "foreign_project": foreign_project,
    }


# ---------------------------------------------------------------------------
# has_permission
# ---------------------------------------------------------------------------


class TestHasPermission:
    async def test_global_scope_uses_global_set(self, db, env):
        assert await PermissionService.has_permission(
            db, env["admin"].id, Permission.USER_MANAGE_ROLES
        )
        assert not await PermissionService.has_permission(
            db, env["member"].id, Permission.USER_MANAGE_ROLES
        )

    async def test_global_scope_ignores_project(self, db, env):
        assert not await PermissionService.has_permission(
            db, env["member"].id, Permission.PROJECT_CREATE, env["team_project"].id
        )

    @pytest.mark.parametrize("who", ["admin", "member", "viewer"])
    async def test_own_scope_always_true(self, db, env, who):
        assert await PermissionService.has_permission(
            db, env[who].id, Permission.TIME_TRACKING_CREATE
        )
        assert await PermissionService.has_permission(
            db, env[who].id, "time_tracking:update", env["foreign_project"].id
        )

    async def test_project_scope_requires_project_id(self, db, env):
        assert not await PermissionService.has_permission(
            db, env["admin"].id, Permission.PROJECT_UPDATE
        )

    async def test_project_scope_via_project_role(self, db, env):
        assert await PermissionService.has_permission(
            db, env["member"].id, Permission.TASK_CREATE, env["team_project"].id
        )
        assert not await PermissionService.has_permission(
            db, env["member"].id, Permission.TASK_CREATE, env["private_project"].id
        )

    async def test_global_grant_covers_own_org_projects(self, db, env):
        assert await PermissionService.has_permission(
            db, env["admin"].id, Permission.PROJECT_UPDATE, env["private_project"].id
        )

    async def test_global_grant_stops_at_org_boundary(self, db, env):
        assert not await PermissionService.has_permission(
            db, env["admin"].id, Permission.PROJECT_UPDATE, env["foreign_project"].id
        )

    async def test_string_project_id_accepted(self, db, env):
        assert await PermissionService.has_permission(
            db, env["member"].id, "task:create", str(env["team_project"].id)
        )

    async def test_invalid_project_id_is_false(self, db, env):
        assert not await PermissionService.has_permission(
            db, env["admin"].id, Permission.PROJECT_UPDATE, "not-a-project"
        )

    async def test_unknown_project_is_false(self, db, env):
        assert not await PermissionService.has_permission(
            db, env["admin"].id, Permission.PROJECT_UPDATE, uuid.uuid4()
        )

    async def test_missing_user_raises(self, db, env):
        with pytest.raises(NotFoundError):
            await PermissionService.has_permission(db, uuid.uuid4(), Permission.PROJECT_READ)

    async def test_custom_role_grant(self, db, org, env):
        custom = await create_custom_role(
            db, organization=org, permissions=[Permission.PROJECT_CREATE.value]
        )
        user = await create_user(db, organization=org, custom_role=custom)
        assert await PermissionService.has_permission(db, user.id, Permission.PROJECT_CREATE)


class TestAnyAll:
    async def test_any(self, db, env):
        uid = env["member"].id
        assert await PermissionService.has_any_permission(
            db, uid, [Permission.USER_DELETE, Permission.TASK_READ], env["team_project"].id
        )
        assert not await PermissionService.has_any_permission(
            db, uid, [Permission.USER_DELETE, Permission.ORGANIZATION_DELETE]
        )

    async def test_all(self, db, env):
        uid = env["member"].id
        project_id = env["team_project"].id
        assert await PermissionService.has_all_permissions(
            db, uid, [Permission.TASK_READ, Permission.TASK_CREATE], project_id
        )
        assert not await PermissionService.has_all_permissions(
            db, uid, [Permission.TASK_READ, Permission.PROJECT_DELETE], project_id
        )

    async def test_empty_lists(self, db, env):
        uid = env["member"].id
        assert not await PermissionService.has_any_permission(db, uid, [])
        assert await PermissionService.has_all_permissions(db, uid, [])


# ---------------------------------------------------------------------------
# Project access
# ---------------------------------------------------------------------------


class TestProjectAccess:
    async def test_member_without_relationship_denied(self, db, env):
        uid = env["member"].id
        assert not await PermissionService.can_access_project(db, uid, env["private_project"].id)
        accessible = await PermissionService.get_accessible_projects(db, uid)
        assert str(env["private_project"].id) not in accessible
        assert accessible == [str(env["team_project"].id)]

    async def test_creator_has_access(self, db, env):
        assert await PermissionService.can_access_project(
            db, env["pm"].id, env["private_project"].id
        )

    async def test_admin_sees_every_project_in_own_org(self, db, env):
        accessible = await PermissionService.get_accessible_projects(db, env["admin"].id)
        assert set(accessible) == {
            str(env["team_project"].id),
            str(env["private_project"].id),
        }

    async def test_admin_access_is_org_scoped(self, db, env):
        uid = env["admin"].id
        assert await PermissionService.can_access_project(db, uid, env["private_project"].id)
        assert not await PermissionService.can_access_project(
            db, uid, env["foreign_project"].id
        )

    async def test_foreign_admin_sees_only_own_org(self, db, env):
        accessible = await PermissionService.get_accessible_projects(db, env["foreign_admin"].id)
        assert accessible == [str(env["foreign_project"].id)]

    async def test_admin_keeps_foreign_membership(self, db, org, other_org, pm_user):
        admin = await create_user(db, organization=org, email="multi@planboard.io", role="admin")
        foreign_owner = await create_user(
            db, organization=other_org, email="owner2@planboard.io", role="admin"
        )
        own = await create_project(db, organization=org, created_by=pm_user, name="Own")
        foreign = await create_project(
            db,
            organization=other_org,
            created_by=foreign_owner,
            name="Shared",
            team_members=[admin],
        )
        unrelated = await create_project(
            db, organization=other_org, created_by=foreign_owner, name="Unrelated"
        )

        accessible = await PermissionService.get_accessible_projects(db, admin.id)
        assert accessible == [str(own.id), str(foreign.id)]
        for project in (own, foreign, unrelated):
            assert await PermissionService.can_access_project(db, admin.id, project.id) == (
                str(project.id) in accessible
            )
        snapshot = await PermissionService.build_snapshot(db, admin.id)
        assert snapshot.accessible_projects == accessible

    async def test_promotion_never_shrinks_access(self, db, org, other_org, pm_user):
        user = await create_user(db, organization=org, email="promoted@planboard.io")
        foreign_owner = await create_user(
            db, organization=other_org, email="owner3@planboard.io", role="admin"
        )
        foreign = await create_project(
            db,
            organization=other_org,
            created_by=foreign_owner,
            name="Shared",
            team_members=[user],
        )
        before = set(await PermissionService.get_accessible_projects(db, user.id))
        assert str(foreign.id) in before

        user.role = "admin"
        await db.flush()
        after = set(await PermissionService.get_accessible_projects(db, user.id))
        assert before <= after

    async def test_can_manage_project(self, db, env):
        project_id = env["team_project"].id
        assert await PermissionService.can_manage_project(db, env["pm"].id, project_id)
        assert not await PermissionService.can_manage_project(db, env["member"].id, project_id)
        assert not await PermissionService.can_manage_project(
            db, env["admin"].id, env["foreign_project"].id
        )

    async def test_explicit_manager_assignment_grants_management(self, db, env):
        await assign_project_role(
            db,
            project=env["team_project"],
            user=env["member"],
            role=ProjectRole.PROJECT_MANAGER,
        )
        assert await PermissionService.can_manage_project(
            db, env["member"].id, env["team_project"].id
        )

    async def test_filter_preserves_input_order(self, db, env):
        ids = [
            env["foreign_project"].id,
            env["private_project"].id,
            str(env["team_project"].id),
        ]
        kept = await PermissionService.filter_projects_by_access(db, env["admin"].id, ids)
        assert kept == [env["private_project"].id, str(env["team_project"].id)]

    async def test_filter_accepts_objects(self, db, env):
        projects = [env["team_project"], env["private_project"]]
        kept = await PermissionService.filter_projects_by_access(db, env["member"].id, projects)
        assert kept == [env["team_project"]]


# ---------------------------------------------------------------------------
# require_* guards
# ---------------------------------------------------------------------------


class TestGuards:
    async def test_require_permission_passes(self, db, env):
        await PermissionService.require_permission(
            db, env["admin"].id, Permission.USER_MANAGE_ROLES
        )

    async def test_require_permission_raises_generic_403(self, db, env):
        with pytest.raises(PermissionDenied) as exc_info:
            await PermissionService.require_permission(
                db, env["member"].id, Permission.USER_MANAGE_ROLES
            )
        exc = exc_info.value
        assert exc.status_code == 403
        assert exc.detail == "Insufficient permissions"
        assert exc.permissions == ("user:manage_roles",)

    async def test_denial_is_logged(self, db, env, caplog):
        with caplog.at_level(logging.WARNING, logger="planboard.services.permission_service"):
            with pytest.raises(PermissionDenied):
                await PermissionService.require_permission(
                    db, env["viewer"].id, Permission.PROJECT_DELETE, env["team_project"].id
                )
        assert "project:delete" in caplog.text

    async def test_require_any(self, db, env):
        await PermissionService.require_any_permission(
            db, env["member"].id, [Permission.USER_DELETE, Permission.TIME_TRACKING_CREATE]
        )
        with pytest.raises(PermissionDenied):
            await PermissionService.require_any_permission(
                db, env["member"].id, [Permission.USER_DELETE, Permission.ORGANIZATION_DELETE]
            )

    async def test_require_all_reports_missing(self, db, env):
        with pytest.raises(PermissionDenied) as exc_info:
            await PermissionService.require_all_permissions(
                db,
                env["member"].id,
                [Permission.TASK_READ, Permission.PROJECT_DELETE, Permission.USER_DELETE],
                env["team_project"].id,
            )
        assert set(exc_info.value.permissions) == {"project:delete", "user:delete"}

    async def test_require_project_access(self, db, env):
        await PermissionService.require_project_access(
            db, env["member"].id, env["team_project"].id
        )
        with pytest.raises(PermissionDenied):
            await PermissionService.require_project_access(
                db, env["member"].id, env["private_project"].id
            )

    async def test_require_project_management(self, db, env):
        await PermissionService.require_project_management(
            db, env["pm"].id, env["team_project"].id
        )
        with pytest.raises(PermissionDenied) as exc_info:
            await PermissionService.require_project_management(
                db, env["member"].id, env["team_project"].id
            )
        assert exc_info.value.permissions == ("project:update",)

    async def test_missing_user_is_not_a_denial(self, db, env):
        with pytest.raises(NotFoundError):
            await PermissionService.require_permission(db, uuid.uuid4(), Permission.TASK_READ)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class TestBuildSnapshot:
    async def test_member_snapshot(self, db, env):
        snapshot = await PermissionService.build_snapshot(db, env["member"].id)
        pid = str(env["team_project"].id)
        assert snapshot.user_id == str(env["member"].id)
        assert snapshot.user_role == "team_member"
        assert snapshot.project_roles == {pid: "project_member"}
        assert "task:create" in snapshot.project_permissions[pid]
        assert snapshot.accessible_projects == [pid]
        assert "task:read" in snapshot.global_permissions

    async def test_global_permissions_in_catalog_order(self, db, env):
        snapshot = await PermissionService.build_snapshot(db, env["admin"].id)
        order = [p.value for p in Permission]
        positions = [order.index(p) for p in snapshot.global_permissions]
        assert positions == sorted(positions)

    async def test_wire_form_is_camel_case(self, db, env):
        wire = (await PermissionService.build_snapshot(db, env["admin"].id)).to_wire()
        assert set(wire) == {
            "userId",
            "globalPermissions",
            "projectPermissions",
            "projectRoles",
            "userRole",
            "accessibleProjects",
        }
        assert len(wire["accessibleProjects"]) == 2
