"""Stage transition API endpoints.

Thin HTTP layer over ``TransitionEngine``; every rule lives in the engine.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.project import ProjectResponse
from ..schemas.stage import (
    BlockStageRequest,
    MoveStageRequest,
    ProjectStageResponse,
    StageDatesUpdate,
)
from ..services.auth_service import require_permission
from ..services.notification_service import Notifier, get_notifier
from ..services.permission_service import Actor
from ..services.project_service import ProjectService
from ..services.transition_engine import TransitionEngine

router = APIRouter(tags=["Stages"])


def get_engine(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> TransitionEngine:
    return TransitionEngine(db, notifier)


@router.get(
    "/api/projects/{project_id}/stages",
    response_model=List[ProjectStageResponse],
    summary="List a project's stages in order",
)
async def list_stages(
    project_id: UUID,
    actor: Actor = Depends(require_permission("projects.read")),
    db: AsyncSession = Depends(get_db),
) -> List[ProjectStageResponse]:
    return await ProjectService(db).list_stages(project_id, actor)


@router.put(
    "/api/stages/{stage_id}",
    response_model=ProjectStageResponse,
    summary="Update planned dates",
    responses={422: {"description": "Planned start after planned end"}},
)
async def update_stage_dates(
    stage_id: UUID,
    data: StageDatesUpdate,
    actor: Actor = Depends(require_permission("stages.update")),
    engine: TransitionEngine = Depends(get_engine),
) -> ProjectStageResponse:
    return await engine.update_planned_dates(
        stage_id,
        actor,
        planned_start_date=data.planned_start_date,
        planned_end_date=data.planned_end_date,
    )


@router.post(
    "/api/stages/{stage_id}/complete",
    response_model=ProjectStageResponse,
    summary="Complete the active stage",
    description="Marks the stage COMPLETED and activates the next stage.",
    responses={400: {"description": "Stage is not the active, unblocked stage"}},
)
async def complete_stage(
    stage_id: UUID,
    actor: Actor = Depends(require_permission("stages.complete")),
    engine: TransitionEngine = Depends(get_engine),
) -> ProjectStageResponse:
    return await engine.complete_stage(stage_id, actor)


@router.post(
    "/api/stages/{stage_id}/block",
    response_model=ProjectStageResponse,
    summary="Block the active stage",
    responses={
        400: {"description": "Stage is completed, already blocked, or not active"},
        422: {"description": "Blank reason"},
    },
)
async def block_stage(
    stage_id: UUID,
    data: BlockStageRequest,
    actor: Actor = Depends(require_permission("stages.block")),
    engine: TransitionEngine = Depends(get_engine),
) -> ProjectStageResponse:
    return await engine.block_stage(stage_id, data.reason, actor)


@router.post(
    "/api/stages/{stage_id}/unblock",
    response_model=ProjectStageResponse,
    summary="Unblock a stage",
)
async def unblock_stage(
    stage_id: UUID,
    actor: Actor = Depends(require_permission("stages.block")),
    engine: TransitionEngine = Depends(get_engine),
) -> ProjectStageResponse:
    return await engine.unblock_stage(stage_id, actor)


@router.post(
    "/api/projects/{project_id}/move",
    response_model=ProjectResponse,
    summary="Move a project to any stage",
    description=(
        "Backward moves and stage skips need a justification; skips also "
        "need the stages.override permission."
    ),
)
async def move_project(
    project_id: UUID,
    data: MoveStageRequest,
    actor: Actor = Depends(require_permission("stages.update")),
    engine: TransitionEngine = Depends(get_engine),
) -> ProjectResponse:
    return await engine.move_to_stage(project_id, data.target_stage, actor, data.justification)
