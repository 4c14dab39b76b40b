"""Permission catalogue and seeded system roles.

The slugs below are the only authorization primitive the API checks.
Role names are display labels; nothing branches on them.
"""

# (resource, action, name, description)
PERMISSIONS: list[tuple[str, str, str, str]] = [
    # Users
    ("users", "read", "View users", "List and view user accounts"),
    ("users", "create", "Create users", "Create new user accounts"),
    ("users", "update", "Edit users", "Edit users and assign roles"),
    ("users", "delete", "Delete users", "Deactivate user accounts"),
    # Projects
    ("projects", "read", "View projects", "View every project"),
    ("projects", "create", "Create projects", "Create new projects"),
    ("projects", "update", "Edit projects", "Manage any project, not just owned ones"),
    ("projects", "delete", "Delete projects", "Move projects to the trash"),
    # Stages
    ("stages", "read", "View stages", "View stage ledgers"),
    ("stages", "update", "Edit stages", "Edit stage planning dates"),
    ("stages", "complete", "Complete stages", "Complete the active stage"),
    ("stages", "block", "Block stages", "Block and unblock stages"),
    ("stages", "override", "Override stage order", "Skip stages and move without prerequisites"),
    # Roles
    ("roles", "read", "View roles", "List roles and permissions"),
    ("roles", "manage", "Manage roles", "Create, edit and delete roles"),
    # Trash
    ("trash", "read", "View trash", "List trashed projects"),
    ("trash", "restore", "Restore", "Restore trashed projects"),
    ("trash", "delete", "Purge", "Permanently delete trashed projects"),
    # Reports
    ("reports", "read", "View reports", "View reports"),
    ("reports", "export", "Export reports", "Export reports"),
    # Board
    ("kanban", "view", "View board", "View the Kanban board"),
    # Settings
    ("settings", "read", "View settings", "View runtime settings"),
    ("settings", "update", "Edit settings", "Edit runtime settings"),
]

ALL_PERMISSION_SLUGS: list[str] = [f"{resource}.{action}" for resource, action, _, _ in PERMISSIONS]

# Wildcard grant used by the super-admin role
ALL = "*"

SYSTEM_ROLES: list[dict] = [
    {
        "slug": "super-admin",
        "name": "Super Administrator",
        "description": "Full access to the system",
        "permissions": [ALL],
    },
    {
        "slug": "admin",
        "name": "Administrator",
        "description": "Manages users and projects",
        "permissions": [
            "users.read", "users.create", "users.update",
            "projects.read", "projects.create", "projects.update", "projects.delete",
            "stages.read", "stages.update", "stages.complete", "stages.block", "stages.override",
            "kanban.view",
            "roles.read",
            "trash.read", "trash.restore", "trash.delete",
            "reports.read", "reports.export",
        ],
    },
    {
        "slug": "manager",
        "name": "Manager",
        "description": "Manages assigned projects",
        "permissions": [
            "users.read",
            "projects.read", "projects.create", "projects.update",
            "stages.read", "stages.update", "stages.complete", "stages.block",
            "kanban.view",
            "reports.read",
        ],
    },
    {
        "slug": "operator",
        "name": "Operator",
        "description": "Views and comments on projects",
        "permissions": [
            "projects.read",
            "stages.read",
            "kanban.view",
        ],
    },
]


def expand_grants(grants: list[str]) -> list[str]:
    """Resolve the wildcard grant into concrete slugs."""
    if ALL in grants:
        return list(ALL_PERMISSION_SLUGS)
    return [g for g in grants if g in ALL_PERMISSION_SLUGS]
