"""Roles and permissions API endpoints.

System roles are listed like any other role but reject edits and deletes.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.role import PermissionGroups, PermissionResponse, RoleCreate, RoleResponse, RoleUpdate
from ..services.auth_service import require_permission
from ..services.permission_service import Actor
from ..services.role_service import RoleService, get_role_service

router = APIRouter(tags=["Roles"])


def get_service(db: AsyncSession = Depends(get_db)) -> RoleService:
    return get_role_service(db)


@router.get(
    "/api/permissions",
    response_model=PermissionGroups,
    summary="List permissions grouped by resource",
)
async def list_permissions(
    actor: Actor = Depends(require_permission("roles.read")),
    service: RoleService = Depends(get_service),
) -> PermissionGroups:
    groups = await service.grouped_permissions()
    return PermissionGroups(groups={
        resource: [PermissionResponse.model_validate(p) for p in permissions]
        for resource, permissions in groups.items()
    })


@router.get(
    "/api/roles",
    response_model=List[RoleResponse],
    summary="List roles",
)
async def list_roles(
    actor: Actor = Depends(require_permission("roles.read")),
    service: RoleService = Depends(get_service),
) -> List[RoleResponse]:
    return await service.list_roles()


@router.get(
    "/api/roles/{role_id}",
    response_model=RoleResponse,
    summary="Get a role",
)
async def get_role(
    role_id: UUID,
    actor: Actor = Depends(require_permission("roles.read")),
    service: RoleService = Depends(get_service),
) -> RoleResponse:
    return await service.get_role(role_id)


@router.post(
    "/api/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
    responses={
        409: {"description": "Slug already in use"},
        422: {"description": "Unknown permission slug"},
    },
)
async def create_role(
    data: RoleCreate,
    actor: Actor = Depends(require_permission("roles.manage")),
    service: RoleService = Depends(get_service),
) -> RoleResponse:
    return await service.create_role(data)


@router.put(
    "/api/roles/{role_id}",
    response_model=RoleResponse,
    summary="Update a role",
    responses={400: {"description": "System role, or parent would form a cycle"}},
)
async def update_role(
    role_id: UUID,
    data: RoleUpdate,
    actor: Actor = Depends(require_permission("roles.manage")),
    service: RoleService = Depends(get_service),
) -> RoleResponse:
    return await service.update_role(role_id, data)


@router.delete(
    "/api/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a role",
)
async def delete_role(
    role_id: UUID,
    actor: Actor = Depends(require_permission("roles.manage")),
    service: RoleService = Depends(get_service),
) -> Response:
    await service.delete_role(role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
