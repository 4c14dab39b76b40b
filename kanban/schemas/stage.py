"""Pydantic schemas for stage ledger entries and transition requests."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.project_stage import StageName, StageStatus


class ProjectStageResponse(BaseModel):
    """A single ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    stage_name: StageName
    status: StageStatus
    order: int = Field(..., description="Position in the stage order (0-based)")
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    block_reason: Optional[str] = None
    blocked_at: Optional[datetime] = None
    blocked_by_id: Optional[UUID] = None


class StageDatesUpdate(BaseModel):
    """Planned date window for a stage. Omitted fields are left unchanged."""

    planned_start_date: Optional[datetime] = Field(None, examples=["2026-03-01T00:00:00"])
    planned_end_date: Optional[datetime] = Field(None, examples=["2026-03-31T00:00:00"])

    @field_validator("planned_start_date", "planned_end_date")
    @classmethod
    def as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Stored timestamps are naive UTC."""
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class BlockStageRequest(BaseModel):
    """Reason for blocking a stage. Blank reasons are rejected."""

    reason: str = Field(
        "",
        max_length=2000,
        description="Why the stage cannot progress",
        examples=["Waiting on client sign-off"],
    )


class MoveStageRequest(BaseModel):
    """Move a project to any stage."""

    target_stage: StageName = Field(..., examples=["DEVELOPMENT"])
    justification: Optional[str] = Field(
        None,
        max_length=2000,
        description="Required for backward moves and stage skips",
        examples=["Approved by client"],
    )
