"""Permission resolution and project-level authorization.

Authorization model:
- Super admins bypass every check.
- Everyone else acts through a flat set of permission slugs, computed once
  per request from their active roles and each role's parent chain.
- Project-level checks combine the slug set with ownership and membership:

  Manage (dates, complete, block/unblock, move, members, edits):
      super admin, ``projects.update``, or the current owner.
  View (read project, stages, comments, audit; add comments):
      anything that can manage, or a project member.

Elevated privilege (skipping stages, moving without prerequisites) is
super admin or ``stages.override``.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ForbiddenError, NotFoundError
from ..models.project import Project
from ..models.project_member import ProjectMember
from ..models.role import Role
from ..models.user import User

logger = logging.getLogger(__name__)

MANAGE_ALL_PROJECTS = "projects.update"
OVERRIDE_STAGE_ORDER = "stages.override"


# ============================================================================
# Actor
# ============================================================================


@dataclass(frozen=True)
class Actor:
    """The authenticated principal with its permissions already resolved."""

    id: UUID
    email: str
    display_name: Optional[str] = None
    is_super_admin: bool = False
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def name(self) -> str:
        return self.display_name or self.email

    def has_permission(self, slug: str) -> bool:
        return self.is_super_admin or slug in self.permissions

    def has_any_permission(self, slugs: Iterable[str]) -> bool:
        return self.is_super_admin or any(s in self.permissions for s in slugs)

    @property
    def can_manage_all_projects(self) -> bool:
        return self.has_permission(MANAGE_ALL_PROJECTS)

    @property
    def is_elevated(self) -> bool:
        return self.has_permission(OVERRIDE_STAGE_ORDER)


# ============================================================================
# Role chain resolution
# ============================================================================


def _grants(role: Role) -> set[str]:
    return {p.slug for p in role.permissions}


def _usable(role: Role) -> bool:
    return bool(role.is_active) and role.deleted_at is None


async def resolve_permission_slugs(db: AsyncSession, user: User) -> frozenset[str]:
    """
    Flatten a user's roles and their ancestors into one slug set.

    Walks parent pointers breadth-first, one query per level, and never
    visits a role twice, so a corrupt parent cycle terminates. Inactive
    or soft-deleted roles grant nothing and end their branch.

    Args:
        db: Database session
        user: User with ``roles`` loaded

    Returns:
        Frozen set of ``resource.action`` slugs
    """
    slugs: set[str] = set()
    seen: set[UUID] = set()
    parents: list[UUID] = []

    for role in user.roles:
        seen.add(role.id)
        if not _usable(role):
            continue
        slugs |= _grants(role)
        if role.parent_id is not None:
            parents.append(role.parent_id)

    while parents:
        level = [rid for rid in dict.fromkeys(parents) if rid not in seen]
        if not level:
            break
        seen.update(level)
        result = await db.execute(select(Role).where(Role.id.in_(level)))
        parents = []
        for role in result.scalars().all():
            if not _usable(role):
                continue
            slugs |= _grants(role)
            if role.parent_id is not None:
                parents.append(role.parent_id)

    return frozenset(slugs)


async def build_actor(db: AsyncSession, user: User) -> Actor:
    """Resolve a user into an Actor for the rest of the request."""
    permissions = frozenset() if user.is_super_admin else await resolve_permission_slugs(db, user)
    return Actor(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        is_super_admin=bool(user.is_super_admin),
        permissions=permissions,
    )


# ============================================================================
# Project authorization
# ============================================================================


class TransitionAuthorizer:
    """
    Project-level gate in front of the transition engine and project service.

    Both checks load the project (optionally locking its row for the rest
    of the transaction) and return it, so callers never fetch twice.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the TransitionAuthorizer.

        Args:
            db: SQLAlchemy async database session
        """
        self.db = db

    async def get_project(self, project_id: UUID, *, for_update: bool = False) -> Project:
        """
        Fetch a live (not trashed) project.

        Raises:
            NotFoundError: If the project does not exist or is in the trash
        """
        query = select(Project).where(
            Project.id == project_id,
            Project.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def is_project_member(self, project_id: UUID, user_id: UUID) -> bool:
        """Check membership with an EXISTS query."""
        result = await self.db.execute(
            select(
                exists().where(
                    ProjectMember.project_id == project_id,
                    ProjectMember.user_id == user_id,
                )
            )
        )
        return bool(result.scalar())

    def can_manage(self, project: Project, actor: Actor) -> bool:
        return actor.can_manage_all_projects or project.owner_id == actor.id

    async def authorize_manage(
        self,
        project_id: UUID,
        actor: Actor,
        *,
        for_update: bool = False,
    ) -> Project:
        """
        Allow super admins, holders of projects.update, and the owner.

        Raises:
            NotFoundError: Project missing or trashed
            ForbiddenError: Actor is not responsible for the project
        """
        project = await self.get_project(project_id, for_update=for_update)
        if self.can_manage(project, actor):
            return project

        logger.info(f"Manage denied: user={actor.id} project={project_id}")
        raise ForbiddenError(
            "You are not responsible for this project",
            {"project_id": str(project_id)},
        )

    async def authorize_view(self, project_id: UUID, actor: Actor) -> Project:
        """
        Allow everyone who can manage, plus project members.

        Raises:
            NotFoundError: Project missing or trashed
            ForbiddenError: Actor has no relation to the project
        """
        project = await self.get_project(project_id)
        if self.can_manage(project, actor):
            return project
        if await self.is_project_member(project_id, actor.id):
            return project

        raise ForbiddenError(
            "You do not have access to this project",
            {"project_id": str(project_id)},
        )


def get_transition_authorizer(db: AsyncSession) -> TransitionAuthorizer:
    """
    Factory function to create a TransitionAuthorizer instance.

    Args:
        db: SQLAlchemy async database session

    Returns:
        TransitionAuthorizer: A new authorizer instance
    """
    return TransitionAuthorizer(db)
