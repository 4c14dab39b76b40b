"""API routers package.

This package contains all FastAPI routers for the application.
Each router handles a specific domain of the API.
"""

from .auth import router as auth_router
from .projects import router as projects_router
from .roles import router as roles_router
from .settings import router as settings_router
from .stages import router as stages_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "projects_router",
    "roles_router",
    "settings_router",
    "stages_router",
    "users_router",
]
