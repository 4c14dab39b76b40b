"""Pydantic schemas package for request/response validation."""

from .project import (
    AuditLogResponse,
    CommentCreate,
    CommentResponse,
    ProjectCreate,
    ProjectMemberCreate,
    ProjectMemberResponse,
    ProjectOwnerUpdate,
    ProjectResponse,
    ProjectUpdate,
)
from .role import (
    PermissionGroups,
    PermissionResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from .setting import SettingResponse, SettingsBulkUpdate
from .stage import (
    BlockStageRequest,
    MoveStageRequest,
    ProjectStageResponse,
    StageDatesUpdate,
)
from .user import (
    AssignRoles,
    CurrentUserResponse,
    UserCreate,
    UserResponse,
    UserSummary,
    UserUpdate,
)

__all__ = [
    # Project schemas
    "AuditLogResponse",
    "CommentCreate",
    "CommentResponse",
    "ProjectCreate",
    "ProjectMemberCreate",
    "ProjectMemberResponse",
    "ProjectOwnerUpdate",
    "ProjectResponse",
    "ProjectUpdate",
    # Role schemas
    "PermissionGroups",
    "PermissionResponse",
    "RoleCreate",
    "RoleResponse",
    "RoleUpdate",
    # Setting schemas
    "SettingResponse",
    "SettingsBulkUpdate",
    # Stage schemas
    "BlockStageRequest",
    "MoveStageRequest",
    "ProjectStageResponse",
    "StageDatesUpdate",
    # User schemas
    "AssignRoles",
    "CurrentUserResponse",
    "UserCreate",
    "UserResponse",
    "UserSummary",
    "UserUpdate",
]
