"""Runtime settings API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.setting import SettingResponse, SettingsBulkUpdate
from ..services.auth_service import require_permission
from ..services.permission_service import Actor
from ..services.settings_service import SettingsCache, get_settings_cache

router = APIRouter(prefix="/api/settings", tags=["Settings"])


@router.get(
    "",
    response_model=List[SettingResponse],
    summary="List settings",
    description="Encrypted values (such as the SMTP password) are masked.",
)
async def list_settings(
    group: Optional[str] = Query(None, description="Only settings of this group"),
    actor: Actor = Depends(require_permission("settings.read")),
    db: AsyncSession = Depends(get_db),
    cache: SettingsCache = Depends(get_settings_cache),
) -> List[SettingResponse]:
    return await cache.list_settings(db, group)


@router.put(
    "",
    response_model=List[SettingResponse],
    summary="Update settings",
    description="Unknown keys and masked placeholders are ignored.",
)
async def update_settings(
    data: SettingsBulkUpdate,
    actor: Actor = Depends(require_permission("settings.update")),
    db: AsyncSession = Depends(get_db),
    cache: SettingsCache = Depends(get_settings_cache),
) -> List[SettingResponse]:
    await cache.bulk_update(db, data.settings)
    return await cache.list_settings(db)
