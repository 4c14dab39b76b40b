"""Setting SQLAlchemy model: runtime-editable key/value configuration."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid

from ..database import Base


class Setting(Base):
    """
    A single runtime setting (SMTP credentials, app name, app URL).

    Values flagged ``encrypted`` are never returned in clear text by the API.
    """

    __tablename__ = "Settings"
    __allow_unmapped__ = True

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)
    group = Column(String(50), nullable=False, default="general")
    label = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    encrypted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        """String representation of Setting."""
        return f"<Setting(key={self.key}, group={self.group})>"
