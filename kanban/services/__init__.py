"""Business logic services."""

from .auth_service import (
    authenticate_user,
    create_access_token,
    get_current_actor,
    get_current_user,
    get_user_by_email,
    require_permission,
)
from .mail_service import MailService
from .notification_service import (
    ArqNotifier,
    CommentAddedEvent,
    InlineNotifier,
    MemberAddedEvent,
    Notifier,
    NullNotifier,
    ProjectMovedEvent,
    dispatch_background,
    drain_background_tasks,
)
from .permission_service import (
    Actor,
    TransitionAuthorizer,
    build_actor,
    get_transition_authorizer,
)
from .project_service import (
    ProjectFilters,
    ProjectService,
    get_project_service,
)
from .role_service import (
    RoleService,
    get_role_service,
    seed_permissions_and_roles,
)
from .settings_service import (
    SettingsCache,
    get_settings_cache,
)
from .stage_ledger import StageLedger
from .transition_engine import (
    TransitionEngine,
    get_transition_engine,
    plan_move,
)
from .user_service import (
    UserService,
    get_user_service,
)

__all__ = [
    # Auth service
    "authenticate_user",
    "create_access_token",
    "get_current_actor",
    "get_current_user",
    "get_user_by_email",
    "require_permission",
    # Mail service
    "MailService",
    # Notification service
    "ArqNotifier",
    "CommentAddedEvent",
    "InlineNotifier",
    "MemberAddedEvent",
    "Notifier",
    "NullNotifier",
    "ProjectMovedEvent",
    "dispatch_background",
    "drain_background_tasks",
    # Permission service
    "Actor",
    "TransitionAuthorizer",
    "build_actor",
    "get_transition_authorizer",
    # Project service
    "ProjectFilters",
    "ProjectService",
    "get_project_service",
    # Role service
    "RoleService",
    "get_role_service",
    "seed_permissions_and_roles",
    # Settings service
    "SettingsCache",
    "get_settings_cache",
    # Stage ledger and transition engine
    "StageLedger",
    "TransitionEngine",
    "get_transition_engine",
    "plan_move",
    # User service
    "UserService",
    "get_user_service",
]
