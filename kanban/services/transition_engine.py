"""Stage transition engine.

Every project walks the same six stages (``STAGE_ORDER``). This module owns
the rules for changing a stage's status or the project's current stage:

- complete the active stage, activating the next one
- block / unblock the active stage
- move the project to any stage (forward, skipping ahead, or back)
- edit a stage's planned dates

Each operation:
1. checks authorization and locks the project row (``SELECT ... FOR UPDATE``),
   which serializes transitions on the same project,
2. runs every precondition before touching the ledger,
3. applies ledger and project changes plus an audit entry in one commit,
4. publishes notifications only after the commit.

Move rules:
- backward: needs a justification.
- forward by more than one stage: needs elevated privilege, then a justification.
- forward by one stage: without elevated privilege, every earlier stage must
  already be COMPLETED.
- moving to the current stage is rejected.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import InvalidInputError, RejectedError
from ..models.audit_log import AuditAction, EntityType
from ..models.project import Project
from ..models.project_stage import STAGE_ORDER, ProjectStage, StageName, StageStatus, stage_index
from .audit_service import record_audit
from .notification_service import (
    Notifier,
    ProjectMovedEvent,
    dispatch_background,
    project_recipient_emails,
    stage_label,
)
from .permission_service import Actor, TransitionAuthorizer
from .stage_ledger import StageLedger

logger = logging.getLogger(__name__)

_CLEAR_BLOCK = {"block_reason": None, "blocked_at": None, "blocked_by_id": None}


# ============================================================================
# Move planning (pure)
# ============================================================================


class MoveKind(str, Enum):
    FORWARD_ADJACENT = "forward-adjacent"
    FORWARD_SKIP = "forward-skip"
    BACKWARD = "backward"
    NO_OP = "no-op"


@dataclass
class StageChange:
    """New status and column values for one ledger entry."""

    stage_name: StageName
    status: StageStatus
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class MovePlan:
    kind: MoveKind
    from_stage: StageName
    to_stage: StageName
    justification: Optional[str]
    changes: list[StageChange]


def classify_move(current: StageName, target: StageName) -> MoveKind:
    """Compare positions in the stage order."""
    current_index = stage_index(current)
    target_index = stage_index(target)
    if target_index == current_index:
        return MoveKind.NO_OP
    if target_index < current_index:
        return MoveKind.BACKWARD
    if target_index == current_index + 1:
        return MoveKind.FORWARD_ADJACENT
    return MoveKind.FORWARD_SKIP


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def plan_move(
    current: str,
    target: str,
    stages: Sequence[ProjectStage],
    *,
    elevated: bool,
    justification: Optional[str],
    now: datetime,
) -> MovePlan:
    """
    Decide whether a move is allowed and what it does to every stage.

    Works on a snapshot of the ledger and never mutates it.

    Args:
        current: The project's current stage
        target: Requested stage
        stages: All ledger entries of the project
        elevated: Whether the actor may skip stages and ignore prerequisites
        justification: Free text required for backward moves and skips
        now: Timestamp used for newly set actual dates

    Returns:
        MovePlan describing the changes

    Raises:
        RejectedError: The move shape is not allowed for this actor
    """
    current = StageName(current)
    target = StageName(target)
    justification = _clean(justification)
    kind = classify_move(current, target)
    by_name = {StageName(s.stage_name): s for s in stages}

    if kind is MoveKind.NO_OP:
        raise RejectedError(
            f"Project is already in stage {stage_label(target)}",
            {"current_stage": current.value},
        )

    if kind is MoveKind.BACKWARD and justification is None:
        raise RejectedError(
            "A justification is required to move back",
            {"from": current.value, "to": target.value},
        )

    if kind is MoveKind.FORWARD_SKIP:
        if not elevated:
            raise RejectedError(
                "Skipping stages requires elevated privilege",
                {"from": current.value, "to": target.value},
            )
        if justification is None:
            raise RejectedError(
                "A justification is required to skip stages",
                {"from": current.value, "to": target.value},
            )

    target_index = stage_index(target)

    if kind is MoveKind.FORWARD_ADJACENT and not elevated:
        for name in STAGE_ORDER[:target_index]:
            entry = by_name.get(name)
            if entry is None or entry.status != StageStatus.COMPLETED.value:
                raise RejectedError(
                    f"Stage {stage_label(name)} must be completed first",
                    {"stage": name.value},
                )

    changes: list[StageChange] = []
    target_entry = by_name.get(target)

    if kind is MoveKind.BACKWARD:
        current_index = stage_index(current)
        for name in STAGE_ORDER[target_index + 1:current_index + 1]:
            changes.append(StageChange(name, StageStatus.PENDING, {
                "actual_start_date": None,
                "actual_end_date": None,
                **_CLEAR_BLOCK,
            }))
    else:
        for name in STAGE_ORDER[:target_index]:
            entry = by_name.get(name)
            end = entry.actual_end_date if entry is not None and entry.actual_end_date else now
            changes.append(StageChange(name, StageStatus.COMPLETED, {
                "actual_end_date": end,
                **_CLEAR_BLOCK,
            }))

    start = target_entry.actual_start_date if target_entry is not None and target_entry.actual_start_date else now
    changes.append(StageChange(target, StageStatus.IN_PROGRESS, {
        "actual_start_date": start,
        "actual_end_date": None,
        **_CLEAR_BLOCK,
    }))

    return MovePlan(
        kind=kind,
        from_stage=current,
        to_stage=target,
        justification=justification,
        changes=changes,
    )


# ============================================================================
# Engine
# ============================================================================


def _stage_snapshot(stage: ProjectStage) -> dict[str, Any]:
    return {
        "stage_name": stage.stage_name,
        "status": stage.status,
        "planned_start_date": stage.planned_start_date,
        "planned_end_date": stage.planned_end_date,
        "block_reason": stage.block_reason,
    }


class TransitionEngine:
    """
    Applies stage transitions for one request.

    Args:
        db: Request-scoped session; the engine commits it on success
        notifier: Where to publish post-commit events (optional)
    """

    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier
        self.ledger = StageLedger(db)
        self.authorizer = TransitionAuthorizer(db)

    async def _lock_stage(self, stage_id: UUID, actor: Actor) -> tuple[ProjectStage, Project]:
        """Find the stage, authorize on its project, and re-read it under the lock."""
        stage = await self.ledger.get(stage_id)
        project = await self.authorizer.authorize_manage(stage.project_id, actor, for_update=True)
        await self.db.refresh(stage)
        return stage, project

    # ------------------------------------------------------------------
    # Complete
    # ------------------------------------------------------------------

    async def complete_stage(self, stage_id: UUID, actor: Actor) -> ProjectStage:
        """
        Complete the active stage and activate the next one.

        Completing the last stage leaves ``current_stage`` on it with no
        active stage.

        Raises:
            NotFoundError: Stage or project missing
            ForbiddenError: Actor cannot manage the project
            RejectedError: Stage is completed, blocked, or not yet active
        """
        stage, project = await self._lock_stage(stage_id, actor)

        if stage.status == StageStatus.COMPLETED.value:
            raise RejectedError("Stage is already completed", {"stage_id": str(stage.id)})
        if stage.status == StageStatus.BLOCKED.value:
            raise RejectedError("Stage is blocked, unblock it first", {"stage_id": str(stage.id)})
        if stage.status != StageStatus.IN_PROGRESS.value:
            raise RejectedError(
                "Only the active stage can be completed",
                {"stage_id": str(stage.id), "current_stage": project.current_stage},
            )

        now = datetime.utcnow()
        stages = {s.stage_name: s for s in await self.ledger.list_for_project(project.id)}
        old = _stage_snapshot(stage)

        self.ledger.upsert_status(stage, StageStatus.COMPLETED, actual_end_date=now)

        index = stage_index(stage.stage_name)
        if index + 1 < len(STAGE_ORDER):
            nxt = stages[STAGE_ORDER[index + 1].value]
            self.ledger.upsert_status(
                nxt,
                StageStatus.IN_PROGRESS,
                actual_start_date=nxt.actual_start_date or now,
                actual_end_date=None,
            )
            project.current_stage = nxt.stage_name

        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.COMPLETE_STAGE,
            entity_type=EntityType.STAGE,
            entity_id=stage.id,
            old_value=old,
            new_value={**_stage_snapshot(stage), "current_stage": project.current_stage},
        )
        await self.db.commit()

        logger.info(
            f"Stage {stage.stage_name} of project {project.id} completed by {actor.id}; "
            f"current stage is {project.current_stage}"
        )
        return stage

    # ------------------------------------------------------------------
    # Block / unblock
    # ------------------------------------------------------------------

    async def block_stage(self, stage_id: UUID, reason: Optional[str], actor: Actor) -> ProjectStage:
        """
        Block the active stage with a reason.

        Raises:
            InvalidInputError: Blank reason
            NotFoundError / ForbiddenError: As for complete
            RejectedError: Stage is completed, already blocked, or not active
        """
        reason = _clean(reason)
        if reason is None:
            raise InvalidInputError("A reason is required to block a stage", {"field": "reason"})

        stage, project = await self._lock_stage(stage_id, actor)

        if stage.status == StageStatus.COMPLETED.value:
            raise RejectedError("A completed stage cannot be blocked", {"stage_id": str(stage.id)})
        if stage.status == StageStatus.BLOCKED.value:
            raise RejectedError("Stage is already blocked", {"stage_id": str(stage.id)})
        if stage.status != StageStatus.IN_PROGRESS.value:
            raise RejectedError("Only the active stage can be blocked", {"stage_id": str(stage.id)})

        old = _stage_snapshot(stage)
        self.ledger.upsert_status(
            stage,
            StageStatus.BLOCKED,
            block_reason=reason,
            blocked_at=datetime.utcnow(),
            blocked_by_id=actor.id,
        )
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.BLOCK_STAGE,
            entity_type=EntityType.STAGE,
            entity_id=stage.id,
            old_value=old,
            new_value=_stage_snapshot(stage),
        )
        await self.db.commit()

        logger.info(f"Stage {stage.stage_name} of project {project.id} blocked by {actor.id}")
        return stage

    async def unblock_stage(self, stage_id: UUID, actor: Actor) -> ProjectStage:
        """
        Return a blocked stage to IN_PROGRESS.

        Leaves ``actual_start_date`` and the project's current stage alone.

        Raises:
            RejectedError: Stage is not blocked
        """
        stage, project = await self._lock_stage(stage_id, actor)

        if stage.status != StageStatus.BLOCKED.value:
            raise RejectedError("Stage is not blocked", {"stage_id": str(stage.id)})

        old = _stage_snapshot(stage)
        self.ledger.upsert_status(stage, StageStatus.IN_PROGRESS, **_CLEAR_BLOCK)
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.UNBLOCK_STAGE,
            entity_type=EntityType.STAGE,
            entity_id=stage.id,
            old_value=old,
            new_value=_stage_snapshot(stage),
        )
        await self.db.commit()

        logger.info(f"Stage {stage.stage_name} of project {project.id} unblocked by {actor.id}")
        return stage

    # ------------------------------------------------------------------
    # Planned dates
    # ------------------------------------------------------------------

    async def update_planned_dates(
        self,
        stage_id: UUID,
        actor: Actor,
        planned_start_date: Optional[datetime] = None,
        planned_end_date: Optional[datetime] = None,
    ) -> ProjectStage:
        """
        Set a stage's planned window.

        Raises:
            InvalidInputError: Start would fall after end
        """
        stage, project = await self._lock_stage(stage_id, actor)

        start = planned_start_date or stage.planned_start_date
        end = planned_end_date or stage.planned_end_date
        if start is not None and end is not None and start > end:
            raise InvalidInputError(
                "Planned start date must not be after planned end date",
                {"planned_start_date": str(start), "planned_end_date": str(end)},
            )

        old = _stage_snapshot(stage)
        self.ledger.update_planned_dates(stage, planned_start_date, planned_end_date)
        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.UPDATE_STAGE,
            entity_type=EntityType.STAGE,
            entity_id=stage.id,
            old_value=old,
            new_value=_stage_snapshot(stage),
        )
        await self.db.commit()

        logger.info(f"Planned dates of stage {stage.stage_name} in project {project.id} updated by {actor.id}")
        return stage

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    async def move_to_stage(
        self,
        project_id: UUID,
        target: StageName,
        actor: Actor,
        justification: Optional[str] = None,
    ) -> Project:
        """
        Move a project to any stage.

        Raises:
            NotFoundError / ForbiddenError: As for complete
            RejectedError: Move shape not allowed (see module docstring)
        """
        project = await self.authorizer.authorize_manage(project_id, actor, for_update=True)
        stages = await self.ledger.list_for_project(project.id)

        now = datetime.utcnow()
        plan = plan_move(
            project.current_stage,
            target,
            stages,
            elevated=actor.is_elevated,
            justification=justification,
            now=now,
        )

        by_name = {s.stage_name: s for s in stages}
        for change in plan.changes:
            self.ledger.upsert_status(by_name[change.stage_name.value], change.status, **change.fields)

        previous = project.current_stage
        project.current_stage = plan.to_stage.value

        await record_audit(
            self.db,
            user_id=actor.id,
            action=AuditAction.MOVE_STAGE,
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            old_value={"current_stage": previous},
            new_value={"current_stage": plan.to_stage.value, "justification": plan.justification},
        )
        await self.db.commit()

        logger.info(
            f"Project {project.id} moved {previous} -> {plan.to_stage.value} "
            f"({plan.kind.value}) by {actor.id}"
        )

        if self.notifier is not None:
            event = ProjectMovedEvent(
                project_id=str(project.id),
                project_title=project.title,
                from_stage=stage_label(previous),
                to_stage=stage_label(plan.to_stage.value),
                moved_by_name=actor.name,
                justification=plan.justification,
                recipient_emails=project_recipient_emails(project, exclude_user_id=actor.id),
            )
            dispatch_background(self.notifier.notify_project_moved(event))

        return project


def get_transition_engine(db: AsyncSession, notifier: Optional[Notifier] = None) -> TransitionEngine:
    """Factory function to create a TransitionEngine instance."""
    return TransitionEngine(db, notifier)
