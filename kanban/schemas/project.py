"""Pydantic schemas for Project model validation."""

import json
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.project import Priority
from ..models.project_stage import StageName
from .stage import ProjectStageResponse
from .user import UserSummary


class ProjectBase(BaseModel):
    """Base schema with common project fields."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Project title",
        examples=["Billing migration"],
    )
    description: Optional[str] = Field(
        None,
        description="Project description",
        examples=["Move invoicing to the new ERP"],
    )
    priority: Priority = Field(
        Priority.MEDIUM,
        description="Project priority",
    )


class ProjectCreate(ProjectBase):
    """Schema for creating a new project. The creator becomes the owner."""


class ProjectUpdate(BaseModel):
    """Schema for updating a project."""

    title: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Project title",
    )
    description: Optional[str] = Field(
        None,
        description="Project description",
    )
    priority: Optional[Priority] = Field(
        None,
        description="Project priority",
    )


class ProjectOwnerUpdate(BaseModel):
    """Schema for reassigning project ownership."""

    owner_id: UUID = Field(..., description="ID of the new owner")


class ProjectMemberCreate(BaseModel):
    """Schema for adding a member to a project."""

    user_id: UUID = Field(..., description="ID of the user to add")


class ProjectMemberResponse(BaseModel):
    """Project membership with the member's profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    user_id: UUID
    assigned_at: datetime
    user: Optional[UserSummary] = None


class ProjectResponse(ProjectBase):
    """Project with owner, ledger and team."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    current_stage: StageName
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    owner: Optional[UserSummary] = None
    stages: List[ProjectStageResponse] = Field(default_factory=list)
    members: List[ProjectMemberResponse] = Field(default_factory=list)

    @field_validator("stages", mode="after")
    @classmethod
    def in_stage_order(cls, value: List[ProjectStageResponse]) -> List[ProjectStageResponse]:
        return sorted(value, key=lambda s: s.order)


class CommentCreate(BaseModel):
    """Schema for adding a comment."""

    content: str = Field(
        ...,
        max_length=10000,
        description="Comment text",
        examples=["Deployed to staging"],
    )


class CommentResponse(BaseModel):
    """Schema for comment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    author: Optional[UserSummary] = None


class AuditLogResponse(BaseModel):
    """Audit trail entry with decoded values."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[UUID] = None
    action: str
    entity_type: str
    entity_id: UUID
    old_value: Optional[dict] = None
    new_value: Optional[dict] = None
    created_at: datetime

    @field_validator("old_value", "new_value", mode="before")
    @classmethod
    def decode_json(cls, value):
        if isinstance(value, str):
            return json.loads(value)
        return value
