"""Permission SQLAlchemy model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base
from .role import role_permissions

if TYPE_CHECKING:
    from .role import Role


class Permission(Base):
    """
    A single grantable capability, identified by (resource, action).

    Exposed everywhere as the dotted slug ``resource.action``.
    """

    __tablename__ = "Permissions"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
    )

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    resource = Column(String(50), nullable=False)
    action = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    roles = relationship(
        "Role",
        secondary=role_permissions,
        back_populates="permissions",
        lazy="noload",
    )

    @property
    def slug(self) -> str:
        return f"{self.resource}.{self.action}"

    def __repr__(self) -> str:
        """String representation of Permission."""
        return f"<Permission(slug={self.slug})>"
