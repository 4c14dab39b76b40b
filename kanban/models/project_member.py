"""ProjectMember SQLAlchemy model for project team membership."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project
    from .user import User


class ProjectMember(Base):
    """
    Team membership of a user in a project, distinct from ownership.

    Members can view the project and comment on it; managing it still
    requires ownership or the projects.update permission.

    Attributes:
        id: Unique identifier (UUID)
        project_id: FK to the project
        user_id: FK to the member
        assigned_at: When the membership was created
    """

    __tablename__ = "ProjectMembers"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship(
        "Project",
        back_populates="members",
        lazy="noload",
    )
    user = relationship(
        "User",
        back_populates="memberships",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation of ProjectMember."""
        return f"<ProjectMember(project_id={self.project_id}, user_id={self.user_id})>"
