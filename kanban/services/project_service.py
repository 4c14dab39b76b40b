"""Project lifecycle around the transition engine.

Covers creation (with the full stage ledger), listing with visibility
rules, edits, ownership transfer, the trash (soft delete, restore, purge),
team membership and comments.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from ..models.audit_log import AuditAction, AuditLog, EntityType
from ..models.comment import Comment
from ..models.project import Priority, Project
from ..models.project_member import ProjectMember
from ..models.project_stage import ProjectStage, StageName, StageStatus
from ..models.user import User
from .audit_service import list_project_audit, record_audit
from .notification_service import (
    CommentAddedEvent,
    MemberAddedEvent,
    Notifier,
    dispatch_background,
    project_recipient_emails,
)
from .permission_service import Actor, TransitionAuthorizer
from .stage_ledger import StageLedger

logger = logging.getLogger(__name__)


@dataclass
class ProjectFilters:
    """Optional filters for project listing."""

    owner_id: Optional[UUID] = None
    member_id: Optional[UUID] = None
    priority: Optional[Priority] = None
    current_stage: Optional[StageName] = None
    search: Optional[str] = None
    delayed: bool = False


def _project_snapshot(project: Project) -> dict:
    return {
        "title": project.title,
        "description": project.description,
        "priority": project.priority,
        "owner_id": project.owner_id,
    }


class ProjectService:
    """
    Service class for project operations.

    Args:
        db: Request-scoped session
        notifier: Where to publish member/comment events (optional)
    """

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier
        self.ledger = StageLedger(db)
        self.authorizer = TransitionAuthorizer(db)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _reload(self, project_id: UUID) -> Project:
        """Re-read a project with owner, stages and members fresh from the database."""
        result = await self.db.execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _get_trashed(self, project_id: UUID) -> Project:
        result = await self.db.execute(
            select(Project).where(Project.id == project_id, Project.deleted_at.isnot(None))
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def _get_active_user(self, user_id: UUID) -> User:
        result = await self.db.execute(
            select(User).where(
                User.id == user_id,
                User.is_active.is_(True),
                User.deleted_at.is_(None),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_project(
        self,
        actor: Actor,
        title: str,
        description: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
    ) -> Project:
        """
        Create a project owned by the actor, together with its six ledger entries.

        The first stage starts IN_PROGRESS, the rest PENDING, in one commit.
        """
        now = datetime.utcnow()
        project = Project(
            id=uuid.uuid4(),
            title=title.strip(),
            description=description,
            priority=Priority(priority).value,
            owner_id=actor.id,
            current_stage=StageName.NOT_STARTED.value,
        )
        self.db.add(project)
        self.ledger.create_initial_entries(project.id, now)

        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.CREATE_PROJECT,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            new_value=_project_snapshot(project),
        )
        await self.db.commit()

        logger.info(f"Project created: id={project.id}, owner={actor.id}")
        return await self._reload(project.id)

    async def list_projects(self, actor: Actor, filters: Optional[ProjectFilters] = None) -> list[Project]:
        """
        Live projects matching ``filters``, newest first.

        Actors who cannot manage every project only see projects they own
        or belong to.
        """
        filters = filters or ProjectFilters()
        query = select(Project).where(Project.deleted_at.is_(None))

        if not actor.can_manage_all_projects:
            is_member = exists().where(
                ProjectMember.project_id == Project.id,
                ProjectMember.user_id == actor.id,
            )
            query = query.where(or_(Project.owner_id == actor.id, is_member))

        if filters.owner_id:
            query = query.where(Project.owner_id == filters.owner_id)
        if filters.member_id:
            query = query.where(
                exists().where(
                    ProjectMember.project_id == Project.id,
                    ProjectMember.user_id == filters.member_id,
                )
            )
        if filters.priority:
            query = query.where(Project.priority == Priority(filters.priority).value)
        if filters.current_stage:
            query = query.where(Project.current_stage == StageName(filters.current_stage).value)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.where(or_(Project.title.ilike(pattern), Project.description.ilike(pattern)))
        if filters.delayed:
            query = query.where(
                exists().where(
                    ProjectStage.project_id == Project.id,
                    ProjectStage.stage_name == Project.current_stage,
                    ProjectStage.planned_end_date < datetime.utcnow(),
                    ProjectStage.status != StageStatus.COMPLETED.value,
                )
            )

        result = await self.db.execute(query.order_by(Project.created_at.desc()))
        return list(result.scalars().all())

    async def get_project(self, project_id: UUID, actor: Actor) -> Project:
        """Fetch a project the actor may view."""
        return await self.authorizer.authorize_view(project_id, actor)

    async def update_project(
        self,
        project_id: UUID,
        actor: Actor,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[Priority] = None,
    ) -> Project:
        """Edit title, description or priority."""
        project = await self.authorizer.authorize_manage(project_id, actor, for_update=True)
        old = _project_snapshot(project)

        if title is not None:
            project.title = title.strip()
        if description is not None:
            project.description = description
        if priority is not None:
            project.priority = Priority(priority).value

        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.UPDATE_PROJECT,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            old_value=old,
            new_value=_project_snapshot(project),
        )
        await self.db.commit()
        return await self._reload(project.id)

    async def reassign_owner(self, project_id: UUID, new_owner_id: UUID, actor: Actor) -> Project:
        """
        Hand a project to another user.

        Raises:
            ForbiddenError: Actor cannot manage every project
            NotFoundError: Project or new owner missing or inactive
        """
        if not actor.can_manage_all_projects:
            raise ForbiddenError("Only administrators can reassign project ownership")

        project = await self.authorizer.get_project(project_id, for_update=True)
        owner = await self._get_active_user(new_owner_id)
        old = _project_snapshot(project)
        project.owner_id = owner.id

        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.UPDATE_PROJECT,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            old_value=old,
            new_value=_project_snapshot(project),
        )
        await self.db.commit()

        logger.info(f"Project {project.id} reassigned to {owner.id} by {actor.id}")
        return await self._reload(project.id)

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    async def soft_delete(self, project_id: UUID, actor: Actor) -> None:
        """Move a project to the trash."""
        project = await self.authorizer.get_project(project_id, for_update=True)
        project.deleted_at = datetime.utcnow()
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.DELETE_PROJECT,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            old_value=_project_snapshot(project),
        )
        await self.db.commit()
        logger.info(f"Project {project.id} moved to trash by {actor.id}")

    async def list_trash(self) -> list[Project]:
        """Trashed projects, most recently deleted first."""
        result = await self.db.execute(
            select(Project)
            .where(Project.deleted_at.isnot(None))
            .order_by(Project.deleted_at.desc())
        )
        return list(result.scalars().all())

    async def restore(self, project_id: UUID, actor: Actor) -> Project:
        """Bring a project back from the trash."""
        project = await self._get_trashed(project_id)
        project.deleted_at = None
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.RESTORE_PROJECT,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
        )
        await self.db.commit()
        logger.info(f"Project {project.id} restored by {actor.id}")
        return await self._reload(project.id)

    async def purge(self, project_id: UUID, actor: Actor) -> None:
        """
        Permanently delete a trashed project with its ledger, team and comments.

        Audit entries are kept.
        """
        project = await self._get_trashed(project_id)

        await self.db.execute(delete(Comment).where(Comment.project_id == project.id))
        await self.db.execute(delete(ProjectMember).where(ProjectMember.project_id == project.id))
        await self.db.execute(delete(ProjectStage).where(ProjectStage.project_id == project.id))
        await self.db.execute(delete(Project).where(Project.id == project.id))
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.DELETE_PROJECT,
            entity_type=EntityType.PROJECT,
            entity_id=project_id,
            new_value={"purged": True},
        )
        await self.db.commit()
        logger.info(f"Project {project_id} purged by {actor.id}")

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def add_member(self, project_id: UUID, user_id: UUID, actor: Actor) -> Project:
        """
        Add a user to the project team and notify the team.

        Raises:
            NotFoundError: Project or user missing
            ForbiddenError: Actor cannot manage the project
            ConflictError: User is already a member
        """
        project = await self.authorizer.authorize_manage(project_id, actor, for_update=True)
        user = await self._get_active_user(user_id)

        if await self.authorizer.is_project_member(project.id, user.id):
            raise ConflictError("ProjectMember", "user_id", str(user.id))

        self.db.add(ProjectMember(project_id=project.id, user_id=user.id))
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.ADD_MEMBER,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            new_value={"user_id": user.id},
        )
        await self.db.commit()
        project = await self._reload(project.id)

        logger.info(f"User {user.id} added to project {project.id} by {actor.id}")

        if self.notifier is not None:
            event = MemberAddedEvent(
                project_id=str(project.id),
                project_title=project.title,
                added_user_name=user.name,
                added_by_name=actor.name,
                recipient_emails=project_recipient_emails(project, exclude_user_id=actor.id, extra_users=[user]),
            )
            dispatch_background(self.notifier.notify_member_added(event))

        return project

    async def remove_member(self, project_id: UUID, user_id: UUID, actor: Actor) -> Project:
        """Remove a user from the project team."""
        project = await self.authorizer.authorize_manage(project_id, actor, for_update=True)

        result = await self.db.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == user_id,
            )
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise NotFoundError("ProjectMember", user_id)

        await self.db.delete(member)
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.REMOVE_MEMBER,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            old_value={"user_id": user_id},
        )
        await self.db.commit()

        logger.info(f"User {user_id} removed from project {project.id} by {actor.id}")
        return await self._reload(project.id)

    async def list_members(self, project_id: UUID, actor: Actor) -> list[ProjectMember]:
        project = await self.authorizer.authorize_view(project_id, actor)
        return list(project.members)

    # ------------------------------------------------------------------
    # Comments, stages, audit
    # ------------------------------------------------------------------

    async def add_comment(self, project_id: UUID, content: str, actor: Actor) -> Comment:
        """
        Append a comment and notify the team.

        Raises:
            InvalidInputError: Blank content
        """
        content = (content or "").strip()
        if not content:
            raise InvalidInputError("Comment content is required", {"field": "content"})

        project = await self.authorizer.authorize_view(project_id, actor)
        comment = Comment(id=uuid.uuid4(), project_id=project.id, user_id=actor.id, content=content)
        self.db.add(comment)
        await self.db.commit()

        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment.id)
            .execution_options(populate_existing=True)
        )
        comment = result.scalar_one()

        if self.notifier is not None:
            event = CommentAddedEvent(
                project_id=str(project.id),
                project_title=project.title,
                comment_author_name=actor.name,
                comment_content=content,
                recipient_emails=project_recipient_emails(project, exclude_user_id=actor.id),
            )
            dispatch_background(self.notifier.notify_comment_added(event))

        return comment

    async def list_comments(self, project_id: UUID, actor: Actor) -> list[Comment]:
        """Comments on a project, newest first."""
        await self.authorizer.authorize_view(project_id, actor)
        result = await self.db.execute(
            select(Comment)
            .where(Comment.project_id == project_id)
            .order_by(Comment.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_stages(self, project_id: UUID, actor: Actor) -> list[ProjectStage]:
        """The project's ledger in stage order."""
        await self.authorizer.authorize_view(project_id, actor)
        return await self.ledger.list_for_project(project_id)

    async def list_audit(self, project_id: UUID, actor: Actor) -> list[AuditLog]:
        await self.authorizer.authorize_view(project_id, actor)
        return await list_project_audit(self.db, project_id)


def get_project_service(db: AsyncSession, notifier: Optional[Notifier] = None) -> ProjectService:
    """Factory function to create a ProjectService instance."""
    return ProjectService(db, notifier)
