"""Projects API endpoints.

Provides CRUD operations for projects plus their trash, team, comments
and audit trail. Stage transitions live in ``routers.stages``.

Access Control:
- Route gates check permission slugs (``require_permission``).
- Project-level checks (owner, member, ``projects.update``) run in
  ``ProjectService`` through the ``TransitionAuthorizer``.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.project import Priority
from ..models.project_stage import StageName
from ..schemas.project import (
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
from ..services.auth_service import get_current_actor, require_permission
from ..services.notification_service import Notifier, get_notifier
from ..services.permission_service import Actor
from ..services.project_service import ProjectFilters, ProjectService

router = APIRouter(tags=["Projects"])


def get_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ProjectService:
    return ProjectService(db, notifier)


# ============================================================================
# Projects
# ============================================================================


@router.post(
    "/api/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
    description="Create a project owned by the caller, starting in NOT_STARTED.",
    responses={
        201: {"description": "Project created with its six stages"},
        403: {"description": "Missing projects.create"},
    },
)
async def create_project(
    data: ProjectCreate,
    actor: Actor = Depends(require_permission("projects.create")),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.create_project(actor, data.title, data.description, data.priority)


@router.get(
    "/api/projects",
    response_model=List[ProjectResponse],
    summary="List projects",
    description="Live projects visible to the caller, newest first.",
)
async def list_projects(
    owner_id: Optional[UUID] = Query(None, description="Only projects owned by this user"),
    member_id: Optional[UUID] = Query(None, description="Only projects this user belongs to"),
    priority: Optional[Priority] = Query(None, description="Filter by priority"),
    current_stage: Optional[StageName] = Query(None, description="Filter by current stage"),
    search: Optional[str] = Query(None, max_length=255, description="Match title or description"),
    delayed: bool = Query(False, description="Only projects whose current stage is past its planned end"),
    actor: Actor = Depends(require_permission("projects.read", "kanban.view")),
    service: ProjectService = Depends(get_service),
) -> List[ProjectResponse]:
    filters = ProjectFilters(
        owner_id=owner_id,
        member_id=member_id,
        priority=priority,
        current_stage=current_stage,
        search=search,
        delayed=delayed,
    )
    return await service.list_projects(actor, filters)


@router.get(
    "/api/projects/trash",
    response_model=List[ProjectResponse],
    summary="List trashed projects",
)
async def list_trash(
    actor: Actor = Depends(require_permission("trash.read")),
    service: ProjectService = Depends(get_service),
) -> List[ProjectResponse]:
    return await service.list_trash()


@router.get(
    "/api/projects/{project_id}",
    response_model=ProjectResponse,
    summary="Get a project",
    responses={
        403: {"description": "Caller is neither responsible for nor a member of the project"},
        404: {"description": "Project not found or in the trash"},
    },
)
async def get_project(
    project_id: UUID,
    actor: Actor = Depends(require_permission("projects.read")),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.get_project(project_id, actor)


@router.put(
    "/api/projects/{project_id}",
    response_model=ProjectResponse,
    summary="Update a project",
    description="Edit title, description or priority. Owner or projects.update only.",
)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.update_project(
        project_id,
        actor,
        title=data.title,
        description=data.description,
        priority=data.priority,
    )


@router.put(
    "/api/projects/{project_id}/owner",
    response_model=ProjectResponse,
    summary="Reassign project owner",
)
async def reassign_owner(
    project_id: UUID,
    data: ProjectOwnerUpdate,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.reassign_owner(project_id, data.owner_id, actor)


@router.delete(
    "/api/projects/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Move a project to the trash",
)
async def delete_project(
    project_id: UUID,
    actor: Actor = Depends(require_permission("projects.delete")),
    service: ProjectService = Depends(get_service),
) -> Response:
    await service.soft_delete(project_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/api/projects/{project_id}/restore",
    response_model=ProjectResponse,
    summary="Restore a project from the trash",
)
async def restore_project(
    project_id: UUID,
    actor: Actor = Depends(require_permission("trash.restore")),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.restore(project_id, actor)


@router.delete(
    "/api/projects/{project_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently delete a trashed project",
)
async def purge_project(
    project_id: UUID,
    actor: Actor = Depends(require_permission("trash.delete")),
    service: ProjectService = Depends(get_service),
) -> Response:
    await service.purge(project_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Members
# ============================================================================


@router.get(
    "/api/projects/{project_id}/members",
    response_model=List[ProjectMemberResponse],
    summary="List project members",
)
async def list_members(
    project_id: UUID,
    actor: Actor = Depends(require_permission("projects.read")),
    service: ProjectService = Depends(get_service),
) -> List[ProjectMemberResponse]:
    return await service.list_members(project_id, actor)


@router.post(
    "/api/projects/{project_id}/members",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a project member",
    responses={
        404: {"description": "Project or user not found"},
        409: {"description": "User is already a member"},
    },
)
async def add_member(
    project_id: UUID,
    data: ProjectMemberCreate,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.add_member(project_id, data.user_id, actor)


@router.delete(
    "/api/projects/{project_id}/members/{user_id}",
    response_model=ProjectResponse,
    summary="Remove a project member",
)
async def remove_member(
    project_id: UUID,
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> ProjectResponse:
    return await service.remove_member(project_id, user_id, actor)


# ============================================================================
# Comments and audit trail
# ============================================================================


@router.get(
    "/api/projects/{project_id}/comments",
    response_model=List[CommentResponse],
    summary="List comments, newest first",
)
async def list_comments(
    project_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> List[CommentResponse]:
    return await service.list_comments(project_id, actor)


@router.post(
    "/api/projects/{project_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    project_id: UUID,
    data: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> CommentResponse:
    return await service.add_comment(project_id, data.content, actor)


@router.get(
    "/api/projects/{project_id}/audit",
    response_model=List[AuditLogResponse],
    summary="Audit trail of a project and its stages",
)
async def list_audit(
    project_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_service),
) -> List[AuditLogResponse]:
    return await service.list_audit(project_id, actor)
