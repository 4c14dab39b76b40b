"""User SQLAlchemy model for authentication and user management."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .project import Project
    from .project_member import ProjectMember
    from .role import Role


# Many-to-many link between users and roles
user_roles = Table(
    "UserRoles",
    Base.metadata,
    Column("user_id", Uuid(as_uuid=True), ForeignKey("Users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Uuid(as_uuid=True), ForeignKey("Roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """
    User model representing application users.

    Attributes:
        id: Unique identifier (UUID)
        email: User's email address (unique, stored lower-cased)
        password_hash: Hashed password for authentication
        display_name: User's display name
        is_active: Inactive users cannot log in and receive no mail
        is_super_admin: Bypasses every permission check
        created_at: Timestamp when user was created
        updated_at: Timestamp when user was last updated
        deleted_at: Soft-delete marker
    """

    __tablename__ = "Users"
    __allow_unmapped__ = True

    # Primary key - UUID
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Authentication fields
    email = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash = Column(
        String(255),
        nullable=False,
    )

    # Profile fields
    display_name = Column(
        String(100),
        nullable=True,
    )
    avatar_url = Column(
        String(500),
        nullable=True,
    )

    # Access flags
    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
    )
    is_super_admin = Column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Timestamps
    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
    deleted_at = Column(
        DateTime,
        nullable=True,
    )

    # Relationships
    roles = relationship(
        "Role",
        secondary=user_roles,
        back_populates="users",
        lazy="selectin",
    )
    owned_projects = relationship(
        "Project",
        back_populates="owner",
        lazy="dynamic",
    )
    memberships = relationship(
        "ProjectMember",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    @property
    def name(self) -> str:
        """Name used in notifications, falling back to the email address."""
        return self.display_name or self.email

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, email={self.email})>"
