"""Project SQLAlchemy model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base
from .project_stage import StageName

if TYPE_CHECKING:
    from .project_member import ProjectMember
    from .project_stage import ProjectStage
    from .user import User


class Priority(str, Enum):
    """Project priority levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Project(Base):
    """
    Project model: the card that travels across the Kanban board.

    ``current_stage`` is a denormalized pointer into the stage order. It
    always names the active ledger entry, or the last stage once every
    stage is completed.

    Attributes:
        id: Unique identifier (UUID)
        title: Project title
        description: Optional long description
        priority: One of Priority
        owner_id: FK to the responsible user
        current_stage: One of StageName
        deleted_at: Soft-delete marker (project sits in the trash)
    """

    __tablename__ = "Projects"
    __allow_unmapped__ = True
    __table_args__ = (
        Index("ix_projects_deleted_current_stage", "deleted_at", "current_stage"),
    )

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default=Priority.MEDIUM.value)
    owner_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    current_stage = Column(
        String(32),
        nullable=False,
        default=StageName.NOT_STARTED.value,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    owner = relationship(
        "User",
        back_populates="owned_projects",
        lazy="selectin",
    )
    stages = relationship(
        "ProjectStage",
        back_populates="project",
        lazy="selectin",
    )
    members = relationship(
        "ProjectMember",
        back_populates="project",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation of Project."""
        return f"<Project(id={self.id}, title={self.title}, stage={self.current_stage})>"
