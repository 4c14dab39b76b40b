"""AuditLog SQLAlchemy model."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid

from ..database import Base


class AuditAction(str, Enum):
    """Recorded actions."""

    CREATE_PROJECT = "CREATE_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    RESTORE_PROJECT = "RESTORE_PROJECT"
    ADD_MEMBER = "ADD_MEMBER"
    REMOVE_MEMBER = "REMOVE_MEMBER"
    UPDATE_STAGE = "UPDATE_STAGE"
    COMPLETE_STAGE = "COMPLETE_STAGE"
    BLOCK_STAGE = "BLOCK_STAGE"
    UNBLOCK_STAGE = "UNBLOCK_STAGE"
    MOVE_STAGE = "MOVE_STAGE"


class EntityType(str, Enum):
    PROJECT = "PROJECT"
    STAGE = "STAGE"


class AuditLog(Base):
    """
    Audit trail entry.

    ``old_value`` and ``new_value`` hold JSON-encoded snapshots of the
    fields that changed.
    """

    __tablename__ = "AuditLogs"
    __allow_unmapped__ = True
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
    )
    action = Column(String(50), nullable=False)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        """String representation of AuditLog."""
        return f"<AuditLog(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
