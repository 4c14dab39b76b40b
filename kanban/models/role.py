"""Role SQLAlchemy model with permission grants and parent inheritance."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base
from .user import user_roles

if TYPE_CHECKING:
    from .permission import Permission
    from .user import User


role_permissions = Table(
    "RolePermissions",
    Base.metadata,
    Column("role_id", Uuid(as_uuid=True), ForeignKey("Roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Uuid(as_uuid=True), ForeignKey("Permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    """
    Role model: a named bundle of permissions.

    A role may point at a parent role; its effective permissions are its own
    grants plus everything granted anywhere up the parent chain.

    Attributes:
        id: Unique identifier (UUID)
        name: Display name
        slug: Unique machine name (e.g. "admin")
        description: Optional description
        is_active: Inactive roles grant nothing
        is_system: Seeded roles that cannot be edited or deleted
        parent_id: FK to the parent role, if any
        deleted_at: Soft-delete marker
    """

    __tablename__ = "Roles"
    __allow_unmapped__ = True

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)
    parent_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Roles.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    permissions = relationship(
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
        lazy="selectin",
    )
    users = relationship(
        "User",
        secondary=user_roles,
        back_populates="roles",
        lazy="noload",
    )

    def __repr__(self) -> str:
        """String representation of Role."""
        return f"<Role(id={self.id}, slug={self.slug})>"
