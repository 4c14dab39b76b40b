"""Role and permission management.

System roles are seeded at install time and cannot be edited or deleted;
their grants still apply like any other role. Deleting a custom role is a
soft delete. A role's parent pointer must never form a cycle.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, InvalidInputError, NotFoundError, RejectedError
from ..models.permission import Permission
from ..models.role import Role
from ..permissions import PERMISSIONS, SYSTEM_ROLES, expand_grants
from ..schemas.role import RoleCreate, RoleUpdate

logger = logging.getLogger(__name__)


def creates_cycle(role_id: UUID, parent_id: Optional[UUID], parent_of: dict[UUID, Optional[UUID]]) -> bool:
    """
    Whether pointing ``role_id`` at ``parent_id`` would close a loop.

    Args:
        role_id: Role being edited
        parent_id: Proposed parent
        parent_of: Current parent pointer of every role
    """
    seen: set[UUID] = set()
    current = parent_id
    while current is not None and current not in seen:
        if current == role_id:
            return True
        seen.add(current)
        current = parent_of.get(current)
    return False


class RoleService:
    """Service class for roles and the permission catalogue."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def list_permissions(self) -> list[Permission]:
        result = await self.db.execute(select(Permission).order_by(Permission.resource, Permission.action))
        return list(result.scalars().all())

    async def grouped_permissions(self) -> dict[str, list[Permission]]:
        groups: dict[str, list[Permission]] = defaultdict(list)
        for permission in await self.list_permissions():
            groups[permission.resource].append(permission)
        return dict(groups)

    async def _permissions_for(self, slugs: list[str]) -> list[Permission]:
        """Map slugs to rows, rejecting anything not in the catalogue."""
        by_slug = {p.slug: p for p in await self.list_permissions()}
        unknown = sorted(set(slugs) - set(by_slug))
        if unknown:
            raise InvalidInputError("Unknown permissions", {"permissions": unknown})
        return [by_slug[s] for s in dict.fromkeys(slugs)]

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def list_roles(self) -> list[Role]:
        result = await self.db.execute(
            select(Role).where(Role.deleted_at.is_(None)).order_by(Role.name)
        )
        return list(result.scalars().all())

    async def get_role(self, role_id: UUID) -> Role:
        result = await self.db.execute(
            select(Role).where(Role.id == role_id, Role.deleted_at.is_(None))
        )
        role = result.scalar_one_or_none()
        if role is None:
            raise NotFoundError("Role", role_id)
        return role

    async def _check_parent(self, role_id: Optional[UUID], parent_id: Optional[UUID]) -> None:
        if parent_id is None:
            return
        await self.get_role(parent_id)
        if role_id is None:
            return
        result = await self.db.execute(select(Role.id, Role.parent_id))
        parent_of = {rid: pid for rid, pid in result.all()}
        if creates_cycle(role_id, parent_id, parent_of):
            raise RejectedError("Role hierarchy cannot contain cycles", {"parent_id": str(parent_id)})

    async def create_role(self, data: RoleCreate) -> Role:
        """
        Create a custom role.

        Raises:
            ConflictError: Slug already taken (including by a deleted role)
            InvalidInputError: Unknown permission slug
        """
        existing = await self.db.execute(select(Role.id).where(Role.slug == data.slug))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Role", "slug", data.slug)

        await self._check_parent(None, data.parent_id)
        role = Role(
            name=data.name,
            slug=data.slug,
            description=data.description,
            parent_id=data.parent_id,
            is_system=False,
            permissions=await self._permissions_for(data.permissions),
        )
        self.db.add(role)
        await self.db.commit()
        logger.info(f"Role created: {role.slug}")
        return role

    async def update_role(self, role_id: UUID, data: RoleUpdate) -> Role:
        """
        Edit a custom role.

        Raises:
            RejectedError: Role is a system role, or the new parent forms a cycle
        """
        role = await self.get_role(role_id)
        if role.is_system:
            raise RejectedError("System roles cannot be modified", {"role": role.slug})

        fields = data.model_dump(exclude_unset=True)
        if "parent_id" in fields:
            await self._check_parent(role.id, data.parent_id)
            role.parent_id = data.parent_id
        if data.name is not None:
            role.name = data.name
        if "description" in fields:
            role.description = data.description
        if data.is_active is not None:
            role.is_active = data.is_active
        if data.permissions is not None:
            role.permissions = await self._permissions_for(data.permissions)

        await self.db.commit()
        logger.info(f"Role updated: {role.slug}")
        return role

    async def delete_role(self, role_id: UUID) -> None:
        """Soft-delete a custom role."""
        role = await self.get_role(role_id)
        if role.is_system:
            raise RejectedError("System roles cannot be deleted", {"role": role.slug})
        role.deleted_at = datetime.utcnow()
        role.is_active = False
        await self.db.commit()
        logger.info(f"Role deleted: {role.slug}")


async def seed_permissions_and_roles(db: AsyncSession) -> dict[str, Role]:
    """
    Make sure every catalogue permission and system role exists.

    Safe to run repeatedly. System role grants are reset to the catalogue.

    Returns:
        System roles keyed by slug
    """
    result = await db.execute(select(Permission))
    permissions = {p.slug: p for p in result.scalars().all()}
    for resource, action, name, description in PERMISSIONS:
        slug = f"{resource}.{action}"
        if slug not in permissions:
            permission = Permission(resource=resource, action=action, name=name, description=description)
            db.add(permission)
            permissions[slug] = permission
    await db.flush()

    roles: dict[str, Role] = {}
    for definition in SYSTEM_ROLES:
        result = await db.execute(select(Role).where(Role.slug == definition["slug"]))
        role = result.scalar_one_or_none()
        grants = [permissions[s] for s in expand_grants(definition["permissions"])]
        if role is None:
            role = Role(
                slug=definition["slug"],
                name=definition["name"],
                description=definition["description"],
                is_system=True,
                permissions=grants,
            )
            db.add(role)
            logger.info(f"Seeded role {definition['slug']}")
        else:
            role.permissions = grants
        roles[definition["slug"]] = role

    await db.flush()
    return roles


def get_role_service(db: AsyncSession) -> RoleService:
    """Factory function to create a RoleService instance."""
    return RoleService(db)
