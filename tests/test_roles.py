"""Tests for role management."""

from uuid import uuid4

import pytest
import pytest_asyncio

from kanban.exceptions import ConflictError, InvalidInputError, NotFoundError, RejectedError
from kanban.permissions import ALL_PERMISSION_SLUGS, SYSTEM_ROLES
from kanban.schemas.role import RoleCreate, RoleUpdate
from kanban.services.role_service import RoleService, seed_permissions_and_roles


@pytest_asyncio.fixture
async def root_headers(make_user, headers_for, system_roles) -> dict:
    user = await make_user("root@example.com", is_super_admin=True)
    return headers_for(user)


class TestSeeding:
    """Tests for the permission catalogue and system roles."""

    @pytest.mark.asyncio
    async def test_every_slug_seeded(self, db_session, system_roles):
        permissions = await RoleService(db_session).list_permissions()

        assert sorted(p.slug for p in permissions) == sorted(ALL_PERMISSION_SLUGS)
        assert set(system_roles) == {r["slug"] for r in SYSTEM_ROLES}
        assert all(role.is_system for role in system_roles.values())

    @pytest.mark.asyncio
    async def test_super_admin_role_gets_everything(self, system_roles):
        slugs = {p.slug for p in system_roles["super-admin"].permissions}

        assert slugs == set(ALL_PERMISSION_SLUGS)

    @pytest.mark.asyncio
    async def test_seed_twice_is_harmless(self, db_session, system_roles):
        again = await seed_permissions_and_roles(db_session)
        await db_session.commit()

        assert again["admin"].id == system_roles["admin"].id
        assert len(await RoleService(db_session).list_permissions()) == len(ALL_PERMISSION_SLUGS)


class TestRoleService:
    """Tests for custom role CRUD."""

    @pytest.mark.asyncio
    async def test_create_role(self, db_session, system_roles):
        role = await RoleService(db_session).create_role(
            RoleCreate(name="Reviewer", slug="reviewer", permissions=["projects.read", "stages.read"])
        )

        assert role.is_system is False
        assert sorted(p.slug for p in role.permissions) == ["projects.read", "stages.read"]

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, db_session, system_roles):
        with pytest.raises(ConflictError):
            await RoleService(db_session).create_role(RoleCreate(name="Admin 2", slug="admin"))

    @pytest.mark.asyncio
    async def test_unknown_permission(self, db_session, system_roles):
        with pytest.raises(InvalidInputError) as exc_info:
            await RoleService(db_session).create_role(
                RoleCreate(name="Odd", slug="odd", permissions=["projects.read", "coffee.brew"])
            )
        assert exc_info.value.details == {"permissions": ["coffee.brew"]}

    @pytest.mark.asyncio
    async def test_unknown_parent(self, db_session, system_roles):
        with pytest.raises(NotFoundError):
            await RoleService(db_session).create_role(RoleCreate(name="Orphan", slug="orphan", parent_id=uuid4()))

    @pytest.mark.asyncio
    async def test_parent_cycle_rejected(self, db_session, system_roles):
        service = RoleService(db_session)
        parent = await service.create_role(RoleCreate(name="Parent", slug="parent"))
        child = await service.create_role(RoleCreate(name="Child", slug="child", parent_id=parent.id))

        with pytest.raises(RejectedError, match="cycles"):
            await service.update_role(parent.id, RoleUpdate(parent_id=child.id))

    @pytest.mark.asyncio
    async def test_system_roles_are_read_only(self, db_session, system_roles):
        service = RoleService(db_session)

        with pytest.raises(RejectedError, match="cannot be modified"):
            await service.update_role(system_roles["manager"].id, RoleUpdate(name="Boss"))
        with pytest.raises(RejectedError, match="cannot be deleted"):
            await service.delete_role(system_roles["manager"].id)

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db_session, system_roles):
        service = RoleService(db_session)
        role = await service.create_role(RoleCreate(name="Temp", slug="temp", permissions=["kanban.view"]))

        updated = await service.update_role(role.id, RoleUpdate(name="Temporary", permissions=["projects.read"]))
        assert updated.name == "Temporary"
        assert [p.slug for p in updated.permissions] == ["projects.read"]

        await service.delete_role(role.id)
        with pytest.raises(NotFoundError):
            await service.get_role(role.id)
        assert role.is_active is False

    @pytest.mark.asyncio
    async def test_deleted_role_stops_granting(self, db_session, system_roles, make_user, actor_for):
        service = RoleService(db_session)
        role = await service.create_role(RoleCreate(name="Temp", slug="temp", permissions=["kanban.view"]))
        user = await make_user("temp@example.com", [role])
        assert (await actor_for(user)).has_permission("kanban.view")

        await service.delete_role(role.id)

        assert not (await actor_for(user)).has_permission("kanban.view")


class TestRolesAPI:
    """Tests for /api/roles and /api/permissions."""

    @pytest.mark.asyncio
    async def test_permissions_grouped(self, client, admin_headers):
        response = await client.get("/api/permissions", headers=admin_headers)

        assert response.status_code == 200
        groups = response.json()["groups"]
        assert sorted(p["action"] for p in groups["stages"]) == [
            "block", "complete", "override", "read", "update",
        ]
        assert groups["trash"][0]["slug"].startswith("trash.")

    @pytest.mark.asyncio
    async def test_admin_reads_but_cannot_manage(self, client, admin_headers):
        response = await client.get("/api/roles", headers=admin_headers)
        assert response.status_code == 200
        assert {"admin", "manager", "operator", "super-admin"} <= {r["slug"] for r in response.json()}

        response = await client.post(
            "/api/roles",
            json={"name": "Reviewer", "slug": "reviewer"},
            headers=admin_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_update_delete(self, client, root_headers):
        response = await client.post(
            "/api/roles",
            json={"name": "Reviewer", "slug": "reviewer", "permissions": ["stages.read", "projects.read"]},
            headers=root_headers,
        )
        assert response.status_code == 201
        role = response.json()
        assert role["permissions"] == ["projects.read", "stages.read"]

        response = await client.put(
            f"/api/roles/{role['id']}",
            json={"description": "Reads everything"},
            headers=root_headers,
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Reads everything"

        response = await client.delete(f"/api/roles/{role['id']}", headers=root_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/roles/{role['id']}", headers=root_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_slug(self, client, root_headers):
        response = await client.post(
            "/api/roles",
            json={"name": "Bad", "slug": "Bad Slug"},
            headers=root_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_system_role_update(self, client, root_headers, system_roles):
        response = await client.put(
            f"/api/roles/{system_roles['operator'].id}",
            json={"name": "Viewer"},
            headers=root_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "System roles cannot be modified"
