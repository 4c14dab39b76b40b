"""Comment SQLAlchemy model (append-only project discussion)."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .user import User


class Comment(Base):
    """A comment on a project. Comments are never edited or deleted."""

    __tablename__ = "Comments"
    __allow_unmapped__ = True

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
    )
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    author = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        """String representation of Comment."""
        return f"<Comment(id={self.id}, project_id={self.project_id})>"
