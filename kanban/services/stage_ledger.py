"""Stage ledger: the per-project record of every lifecycle stage.

A plain record store. It knows the stage order and how to read and write
ledger rows; every workflow rule lives in ``transition_engine``.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundError
from ..models.project_stage import STAGE_ORDER, ProjectStage, StageStatus, stage_index

# Sentinel for "leave this column alone" in upsert_status
UNCHANGED = object()


class StageLedger:
    """Read/write access to ProjectStage rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_project(self, project_id: UUID) -> list[ProjectStage]:
        """All ledger entries of a project, in stage order, re-read from the database."""
        result = await self.db.execute(
            select(ProjectStage)
            .where(ProjectStage.project_id == project_id)
            .execution_options(populate_existing=True)
        )
        return sorted(result.scalars().all(), key=lambda s: stage_index(s.stage_name))

    async def get(self, stage_id: UUID) -> ProjectStage:
        """
        Fetch a single entry.

        Raises:
            NotFoundError: If no such stage exists
        """
        result = await self.db.execute(select(ProjectStage).where(ProjectStage.id == stage_id))
        stage = result.scalar_one_or_none()
        if stage is None:
            raise NotFoundError("Stage", stage_id)
        return stage

    def create_initial_entries(self, project_id: UUID, now: datetime) -> list[ProjectStage]:
        """Add one entry per stage: the first active, the rest pending."""
        entries = []
        for i, name in enumerate(STAGE_ORDER):
            entry = ProjectStage(
                project_id=project_id,
                stage_name=name.value,
                status=(StageStatus.IN_PROGRESS if i == 0 else StageStatus.PENDING).value,
                actual_start_date=now if i == 0 else None,
            )
            self.db.add(entry)
            entries.append(entry)
        return entries

    @staticmethod
    def upsert_status(
        stage: ProjectStage,
        status: StageStatus,
        *,
        actual_start_date=UNCHANGED,
        actual_end_date=UNCHANGED,
        block_reason=UNCHANGED,
        blocked_at=UNCHANGED,
        blocked_by_id=UNCHANGED,
    ) -> ProjectStage:
        """Set the status and any supplied date or block columns."""
        stage.status = status.value
        fields = {
            "actual_start_date": actual_start_date,
            "actual_end_date": actual_end_date,
            "block_reason": block_reason,
            "blocked_at": blocked_at,
            "blocked_by_id": blocked_by_id,
        }
        for name, value in fields.items():
            if value is not UNCHANGED:
                setattr(stage, name, value)
        return stage

    @staticmethod
    def update_planned_dates(
        stage: ProjectStage,
        planned_start_date: Optional[datetime],
        planned_end_date: Optional[datetime],
    ) -> ProjectStage:
        """Overwrite the supplied planned dates; ``None`` leaves a date unchanged."""
        if planned_start_date is not None:
            stage.planned_start_date = planned_start_date
        if planned_end_date is not None:
            stage.planned_end_date = planned_end_date
        return stage
