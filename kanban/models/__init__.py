"""SQLAlchemy ORM models package."""

from .audit_log import AuditAction, AuditLog, EntityType
from .comment import Comment
from .permission import Permission
from .project import Priority, Project
from .project_member import ProjectMember
from .project_stage import STAGE_LABELS, STAGE_ORDER, ProjectStage, StageName, StageStatus
from .role import Role, role_permissions
from .setting import Setting
from .user import User, user_roles

__all__ = [
    "AuditAction",
    "AuditLog",
    "Comment",
    "EntityType",
    "Permission",
    "Priority",
    "Project",
    "ProjectMember",
    "ProjectStage",
    "Role",
    "STAGE_LABELS",
    "STAGE_ORDER",
    "Setting",
    "StageName",
    "StageStatus",
    "User",
    "role_permissions",
    "user_roles",
]
