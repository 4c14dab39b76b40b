"""Audit trail recording and lookup."""

import json
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditAction, AuditLog, EntityType
from ..models.project_stage import ProjectStage


def _encode(value: Optional[dict[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str, sort_keys=True)


async def record_audit(
    db: AsyncSession,
    *,
    user_id: Optional[UUID],
    action: AuditAction,
    entity_type: EntityType,
    entity_id: UUID,
    old_value: Optional[dict[str, Any]] = None,
    new_value: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit entry to the current unit of work.

    The entry commits or rolls back together with the change it describes.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action.value,
        entity_type=entity_type.value,
        entity_id=entity_id,
        old_value=_encode(old_value),
        new_value=_encode(new_value),
    )
    db.add(entry)
    return entry


async def list_project_audit(
    db: AsyncSession,
    project_id: UUID,
    limit: int = 100,
) -> list[AuditLog]:
    """Audit entries for a project and all of its stages, newest first."""
    stage_ids = select(ProjectStage.id).where(ProjectStage.project_id == project_id)
    result = await db.execute(
        select(AuditLog)
        .where(
            or_(
                and_(
                    AuditLog.entity_type == EntityType.PROJECT.value,
                    AuditLog.entity_id == project_id,
                ),
                and_(
                    AuditLog.entity_type == EntityType.STAGE.value,
                    AuditLog.entity_id.in_(stage_ids),
                ),
            )
        )
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
