"""ProjectStage SQLAlchemy model: one ledger entry per (project, stage)."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project


class StageName(str, Enum):
    """The six lifecycle stages every project passes through."""

    NOT_STARTED = "NOT_STARTED"
    BUSINESS_MODELING = "BUSINESS_MODELING"
    IT_MODELING = "IT_MODELING"
    DEVELOPMENT = "DEVELOPMENT"
    HOMOLOGATION = "HOMOLOGATION"
    FINISHED = "FINISHED"


class StageStatus(str, Enum):
    """Ledger entry status values."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


# Canonical order. Every ordering decision uses this tuple, never row data.
STAGE_ORDER: tuple[StageName, ...] = (
    StageName.NOT_STARTED,
    StageName.BUSINESS_MODELING,
    StageName.IT_MODELING,
    StageName.DEVELOPMENT,
    StageName.HOMOLOGATION,
    StageName.FINISHED,
)

STAGE_LABELS: dict[StageName, str] = {
    StageName.NOT_STARTED: "Not Started",
    StageName.BUSINESS_MODELING: "Business Modeling",
    StageName.IT_MODELING: "IT Modeling",
    StageName.DEVELOPMENT: "Development",
    StageName.HOMOLOGATION: "Homologation",
    StageName.FINISHED: "Finished",
}


def stage_index(stage: str) -> int:
    """Position of a stage name in the canonical order."""
    return STAGE_ORDER.index(StageName(stage))


class ProjectStage(Base):
    """
    Ledger entry tracking one stage of one project.

    Attributes:
        id: Unique identifier (UUID)
        project_id: FK to the owning project
        stage_name: One of StageName
        status: One of StageStatus
        planned_start_date / planned_end_date: Planning window
        actual_start_date / actual_end_date: When the stage really ran
        block_reason / blocked_at / blocked_by_id: Set while BLOCKED
    """

    __tablename__ = "ProjectStages"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("project_id", "stage_name", name="uq_project_stages_project_stage"),
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
    stage_name = Column(String(32), nullable=False)
    status = Column(String(20), nullable=False, default=StageStatus.PENDING.value)

    # Planning and actual dates
    planned_start_date = Column(DateTime, nullable=True)
    planned_end_date = Column(DateTime, nullable=True)
    actual_start_date = Column(DateTime, nullable=True)
    actual_end_date = Column(DateTime, nullable=True)

    # Block bookkeeping
    block_reason = Column(Text, nullable=True)
    blocked_at = Column(DateTime, nullable=True)
    blocked_by_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    project = relationship(
        "Project",
        back_populates="stages",
        lazy="noload",
    )

    @property
    def order(self) -> int:
        return stage_index(self.stage_name)

    def __repr__(self) -> str:
        """String representation of ProjectStage."""
        return f"<ProjectStage(project_id={self.project_id}, stage={self.stage_name}, status={self.status})>"
