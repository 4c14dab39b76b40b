"""Pydantic schemas for roles and permissions."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PermissionResponse(BaseModel):
    """A grantable permission."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resource: str
    action: str
    slug: str
    name: str
    description: Optional[str] = None


class PermissionGroups(BaseModel):
    """Permissions grouped by resource."""

    groups: Dict[str, List[PermissionResponse]]


class RoleCreate(BaseModel):
    """Schema for creating a role."""

    name: str = Field(..., min_length=1, max_length=100, examples=["Reviewer"])
    slug: str = Field(
        ...,
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9][a-z0-9-]*$",
        description="Unique machine name (lowercase, digits and dashes)",
        examples=["reviewer"],
    )
    description: Optional[str] = None
    parent_id: Optional[UUID] = Field(None, description="Role to inherit permissions from")
    permissions: List[str] = Field(
        default_factory=list,
        description="Permission slugs granted directly to this role",
        examples=[["projects.read", "stages.read"]],
    )


class RoleUpdate(BaseModel):
    """Schema for updating a role. System roles reject every update."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    parent_id: Optional[UUID] = None
    permissions: Optional[List[str]] = None


class RoleResponse(BaseModel):
    """Role with its direct permission slugs."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    is_active: bool
    is_system: bool
    parent_id: Optional[UUID] = None
    permissions: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("permissions", mode="before")
    @classmethod
    def permission_slugs(cls, value):
        """Accept Permission rows as well as plain slugs."""
        return sorted(p if isinstance(p, str) else p.slug for p in value or [])
