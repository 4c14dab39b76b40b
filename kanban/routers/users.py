"""Users API endpoints.

Provides account administration: search, create, edit, role assignment
and deactivation.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.user import AssignRoles, UserCreate, UserResponse, UserUpdate
from ..services.auth_service import require_permission
from ..services.permission_service import Actor
from ..services.user_service import UserService, get_user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


def get_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return get_user_service(db)


@router.get(
    "",
    response_model=List[UserResponse],
    summary="List users",
    description="Search users by email or display name (case-insensitive, partial match).",
)
async def list_users(
    search: Optional[str] = Query(None, min_length=1, max_length=255, description="Email or name fragment"),
    include_inactive: bool = Query(False, description="Include deactivated accounts"),
    actor: Actor = Depends(require_permission("users.read")),
    service: UserService = Depends(get_service),
) -> List[UserResponse]:
    return await service.list_users(search, include_inactive)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses={409: {"description": "Email already registered"}},
)
async def create_user(
    data: UserCreate,
    actor: Actor = Depends(require_permission("users.create")),
    service: UserService = Depends(get_service),
) -> UserResponse:
    return await service.create_user(data)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user",
)
async def get_user(
    user_id: UUID,
    actor: Actor = Depends(require_permission("users.read")),
    service: UserService = Depends(get_service),
) -> UserResponse:
    return await service.get_user(user_id)


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    actor: Actor = Depends(require_permission("users.update")),
    service: UserService = Depends(get_service),
) -> UserResponse:
    return await service.update_user(user_id, data)


@router.put(
    "/{user_id}/roles",
    response_model=UserResponse,
    summary="Replace a user's roles",
)
async def assign_roles(
    user_id: UUID,
    data: AssignRoles,
    actor: Actor = Depends(require_permission("users.update")),
    service: UserService = Depends(get_service),
) -> UserResponse:
    return await service.assign_roles(user_id, data.role_ids)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate a user",
)
async def deactivate_user(
    user_id: UUID,
    actor: Actor = Depends(require_permission("users.delete")),
    service: UserService = Depends(get_service),
) -> Response:
    await service.deactivate_user(user_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
