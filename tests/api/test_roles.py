"""Integration tests for the /roles endpoints."""

from __future__ import annotations

import uuid

from sqlalchemy import select

from planboard.core.permissions import ALL_PERMISSION_KEYS, Role
from planboard.models.user import User
from tests.conftest import auth_headers, create_custom_role, create_user

# ---------------------------------------------------------------------------
# GET /roles
# ---------------------------------------------------------------------------


class TestListRoles:
    async def test_lists_every_system_role(self, client, db, member_user):
        response = await client.get("/api/v1/roles", headers=auth_headers(member_user))
        assert response.status_code == 200
        keys = [r["key"] for r in response.json()["system_roles"]]
        assert keys == [r.value for r in Role]

    async def test_system_role_user_count(self, client, db, org, admin_user):
        await create_user(db, organization=org, role="admin")
        response = await client.get("/api/v1/roles", headers=auth_headers(admin_user))
        admin_role = next(r for r in response.json()["system_roles"] if r["key"] == "admin")
        assert admin_role["user_count"] == 2
        assert admin_role["label"] == "Administrator"
        assert admin_role["is_system"] is True

    async def test_custom_roles_are_org_scoped(self, client, db, org, other_org, admin_user):
        mine = await create_custom_role(db, organization=org, name="Mine")
        await create_custom_role(db, organization=other_org, name="Theirs")
        await create_user(db, organization=org, custom_role=mine)

        response = await client.get("/api/v1/roles", headers=auth_headers(admin_user))
        custom = response.json()["custom_roles"]
        assert [r["name"] for r in custom] == ["Mine"]
        assert custom[0]["user_count"] == 1
        assert custom[0]["is_system"] is False

    async def test_inactive_custom_roles_hidden(self, client, db, org, admin_user):
        await create_custom_role(db, organization=org, name="Old", is_active=False)
        response = await client.get("/api/v1/roles", headers=auth_headers(admin_user))
        assert response.json()["custom_roles"] == []


# ---------------------------------------------------------------------------
# GET /roles/permissions-schema
# ---------------------------------------------------------------------------


class TestPermissionsSchema:
    async def test_returns_catalog(self, client, db, viewer_user):
        response = await client.get(
            "/api/v1/roles/permissions-schema", headers=auth_headers(viewer_user)
        )
        assert response.status_code == 200
        data = response.json()
        assert data["project"]["label"] == "Projects"
        keys = {k for group in data.values() for k in group["permissions"]}
        assert keys == ALL_PERMISSION_KEYS

    async def test_requires_auth(self, client, db):
        response = await client.get("/api/v1/roles/permissions-schema")
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# POST /roles
# ---------------------------------------------------------------------------


class TestCreateCustomRole:
    async def test_create(self, client, db, org, admin_user):
        response = await client.post(
            "/api/v1/roles",
            json={
                "name": "  Release Managers ",
                "description": "Ship it",
                "permissions": ["sprint:start", "sprint:complete", "sprint:start"],
            },
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Release Managers"
        assert data["permissions"] == ["sprint:start", "sprint:complete"]
        assert data["organization_id"] == str(org.id)
        assert data["user_count"] == 0

    async def test_unknown_permission_rejected(self, client, db, admin_user):
        response = await client.post(
            "/api/v1/roles",
            json={"name": "Bad", "permissions": ["task:read", "widget:frobnicate"]},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 422

    async def test_blank_name_rejected(self, client, db, admin_user):
        response = await client.post(
            "/api/v1/roles", json={"name": "   "}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 422

    async def test_duplicate_name_conflicts(self, client, db, org, admin_user):
        await create_custom_role(db, organization=org, name="Auditors")
        response = await client.post(
            "/api/v1/roles", json={"name": "auditors"}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 409

    async def test_same_name_in_other_org_allowed(self, client, db, other_org, admin_user):
        await create_custom_role(db, organization=other_org, name="Auditors")
        response = await client.post(
            "/api/v1/roles", json={"name": "Auditors"}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 201

    async def test_system_role_name_reserved(self, client, db, admin_user):
        for name in ("Administrator", "team_member"):
            response = await client.post(
                "/api/v1/roles", json={"name": name}, headers=auth_headers(admin_user)
            )
            assert response.status_code == 409

    async def test_team_member_forbidden(self, client, db, member_user):
        response = await client.post(
            "/api/v1/roles", json={"name": "Sneaky"}, headers=auth_headers(member_user)
        )
        assert response.status_code == 403

    async def test_custom_role_can_grant_role_management(self, client, db, org):
        custom = await create_custom_role(
            db, organization=org, permissions=["user:manage_roles"]
        )
        user = await create_user(db, organization=org, custom_role=custom)
        response = await client.post(
            "/api/v1/roles", json={"name": "Delegated"}, headers=auth_headers(user)
        )
        assert response.status_code == 201


# ---------------------------------------------------------------------------
# PATCH /roles/{id}
# ---------------------------------------------------------------------------


class TestUpdateCustomRole:
    async def test_update_permissions(self, client, db, org, admin_user):
        role = await create_custom_role(db, organization=org, permissions=["task:read"])
        response = await client.patch(
            f"/api/v1/roles/{role.id}",
            json={"permissions": ["task:read", "task:create"]},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 200
        assert response.json()["permissions"] == ["task:read", "task:create"]

    async def test_rename(self, client, db, org, admin_user):
        role = await create_custom_role(db, organization=org, name="Before")
        response = await client.patch(
            f"/api/v1/roles/{role.id}", json={"name": "After"}, headers=auth_headers(admin_user)
        )
        assert response.json()["name"] == "After"

    async def test_rename_case_only_allowed(self, client, db, org, admin_user):
        role = await create_custom_role(db, organization=org, name="auditors")
        response = await client.patch(
            f"/api/v1/roles/{role.id}", json={"name": "Auditors"}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 200

    async def test_rename_collision(self, client, db, org, admin_user):
        await create_custom_role(db, organization=org, name="Taken")
        role = await create_custom_role(db, organization=org, name="Free")
        response = await client.patch(
            f"/api/v1/roles/{role.id}", json={"name": "Taken"}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 409

    async def test_other_org_role_not_found(self, client, db, other_org, admin_user):
        role = await create_custom_role(db, organization=other_org)
        response = await client.patch(
            f"/api/v1/roles/{role.id}", json={"name": "Mine"}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 404

    async def test_unknown_role(self, client, db, admin_user):
        response = await client.patch(
            f"/api/v1/roles/{uuid.uuid4()}", json={"name": "X"}, headers=auth_headers(admin_user)
        )
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# DELETE /roles/{id}
# ---------------------------------------------------------------------------


class TestDeleteCustomRole:
    async def test_soft_delete_unlinks_users(self, client, db, org, admin_user):
        role = await create_custom_role(db, organization=org, permissions=["project:create"])
        holder = await create_user(db, organization=org, custom_role=role)

        response = await client.delete(f"/api/v1/roles/{role.id}", headers=auth_headers(admin_user))
        assert response.status_code == 200
        assert response.json() == {
            "id": str(role.id),
            "deleted": True,
            "affected_users_count": 1,
        }

        linked = await db.scalar(select(User.custom_role_id).where(User.id == holder.id))
        assert linked is None

        snapshot = await client.get("/api/v1/auth/permissions", headers=auth_headers(holder))
        assert "project:create" not in snapshot.json()["globalPermissions"]

    async def test_deleted_role_disappears(self, client, db, org, admin_user):
        role = await create_custom_role(db, organization=org, name="Temp")
        await client.delete(f"/api/v1/roles/{role.id}", headers=auth_headers(admin_user))

        listing = await client.get("/api/v1/roles", headers=auth_headers(admin_user))
        assert listing.json()["custom_roles"] == []

        again = await client.delete(f"/api/v1/roles/{role.id}", headers=auth_headers(admin_user))
        assert again.status_code == 404

    async def test_viewer_forbidden(self, client, db, org, viewer_user):
        role = await create_custom_role(db, organization=org)
        response = await client.delete(f"/api/v1/roles/{role.id}", headers=auth_headers(viewer_user))
        assert response.status_code == 403
