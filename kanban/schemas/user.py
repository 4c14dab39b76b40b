"""Pydantic schemas for User model validation."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    """Base schema with common user fields."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["user@example.com"],
    )
    display_name: Optional[str] = Field(
        None,
        max_length=100,
        description="User's display name",
        examples=["John Doe"],
    )


class UserCreate(UserBase):
    """Schema for creating a new user."""

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User's password (will be hashed)",
        examples=["SecureP@ssw0rd!"],
    )
    is_super_admin: bool = Field(
        False,
        description="Bypass every permission check",
    )
    role_ids: List[UUID] = Field(
        default_factory=list,
        description="Roles to assign on creation",
    )


class UserUpdate(BaseModel):
    """Schema for updating a user."""

    display_name: Optional[str] = Field(
        None,
        max_length=100,
        description="User's display name",
    )
    avatar_url: Optional[str] = Field(
        None,
        max_length=500,
        description="URL to user's avatar image",
    )
    is_active: Optional[bool] = Field(
        None,
        description="Inactive users cannot log in",
    )


class AssignRoles(BaseModel):
    """Schema for replacing a user's roles."""

    role_ids: List[UUID] = Field(
        ...,
        description="Complete list of role IDs the user should hold",
    )


class UserSummary(BaseModel):
    """Compact user reference embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    display_name: Optional[str] = None


class RoleSummary(BaseModel):
    """Compact role reference embedded in user responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    name: str


class UserResponse(UserBase):
    """Schema for user response (public data only)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(
        ...,
        description="Unique user identifier",
    )
    avatar_url: Optional[str] = Field(
        None,
        description="URL to user's avatar image",
    )
    is_active: bool = Field(
        True,
        description="Whether the user can log in",
    )
    is_super_admin: bool = Field(
        False,
        description="Whether the user bypasses permission checks",
    )
    roles: List[RoleSummary] = Field(
        default_factory=list,
        description="Roles held by the user",
    )
    created_at: Optional[datetime] = Field(
        None,
        description="When the user was created",
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="When the user was last updated",
    )


class CurrentUserResponse(UserResponse):
    """Profile of the authenticated user with resolved permission slugs."""

    permissions: List[str] = Field(
        default_factory=list,
        description="Effective permission slugs (roles plus parent chain)",
    )
