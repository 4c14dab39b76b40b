"""Runtime settings with an in-process read cache.

Settings rows hold values administrators change without a redeploy (SMTP
credentials, app name and URL). ``SettingsCache`` is created once per
process, loaded at startup, and refreshed after every write; ``get`` only
reads memory. The instance lives on ``app.state`` and reaches endpoints
through ``get_settings_cache``, so tests can swap it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.setting import Setting

logger = logging.getLogger(__name__)

MASK = "••••••••"


@dataclass(frozen=True)
class SettingDefinition:
    key: str
    value: str
    group: str
    label: str
    description: str
    encrypted: bool = False


DEFAULT_SETTINGS: list[SettingDefinition] = [
    # Email (SMTP)
    SettingDefinition("smtp_host", "", "email", "SMTP host", "Mail server host. Leave empty to only log outgoing mail"),
    SettingDefinition("smtp_port", "587", "email", "SMTP port", "Mail server port"),
    SettingDefinition("smtp_username", "", "email", "SMTP username", "Login for the mail server"),
    SettingDefinition("smtp_password", "", "email", "SMTP password", "Password for the mail server", encrypted=True),
    SettingDefinition("smtp_use_tls", "true", "email", "Use STARTTLS", "Upgrade the SMTP connection with STARTTLS"),
    SettingDefinition("smtp_from_email", "noreply@kanban.local", "email", "Sender address", "From address on outgoing mail"),
    # General
    SettingDefinition("app_name", "Kanban", "general", "Application name", "Name shown in mail and in the UI"),
    SettingDefinition("app_url", "http://localhost:3000", "general", "Application URL", "Base URL used for links in mail"),
]

DEFINITIONS_BY_KEY = {d.key: d for d in DEFAULT_SETTINGS}


def masked(setting: Setting) -> dict:
    """Public view of a setting row."""
    value = setting.value
    if setting.encrypted and value:
        value = MASK
    return {
        "key": setting.key,
        "value": value,
        "group": setting.group,
        "label": setting.label,
        "description": setting.description,
        "encrypted": setting.encrypted,
    }


class SettingsCache:
    """Process-wide cache of setting values."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory
        self._values: dict[str, Optional[str]] = {}
        self.loaded = False

    async def load(self) -> None:
        """Seed missing defaults and fill the cache. Called at startup."""
        async with self._session_factory() as db:
            await self.seed_defaults(db)
            await db.commit()
            await self.refresh(db)
        logger.info(f"Settings cache loaded ({len(self._values)} keys)")

    async def seed_defaults(self, db: AsyncSession) -> None:
        """Insert missing default rows and keep labels current without touching values."""
        result = await db.execute(select(Setting))
        existing = {s.key: s for s in result.scalars().all()}

        for definition in DEFAULT_SETTINGS:
            row = existing.get(definition.key)
            if row is None:
                db.add(Setting(
                    key=definition.key,
                    value=definition.value,
                    group=definition.group,
                    label=definition.label,
                    description=definition.description,
                    encrypted=definition.encrypted,
                ))
                logger.info(f"Seeded setting {definition.key}")
            else:
                row.label = definition.label
                row.description = definition.description
                row.group = definition.group
                row.encrypted = definition.encrypted
        await db.flush()

    async def refresh(self, db: AsyncSession) -> None:
        """Replace the cached values with what the database holds."""
        result = await db.execute(select(Setting.key, Setting.value))
        self._values = {key: value for key, value in result.all()}
        self.loaded = True

    def get(self, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """Cached value, or ``fallback`` when missing or empty. Never does I/O."""
        value = self._values.get(key)
        return value if value else fallback

    def get_int(self, key: str, fallback: int) -> int:
        try:
            return int(self.get(key, str(fallback)))
        except (TypeError, ValueError):
            return fallback

    def get_bool(self, key: str, fallback: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return fallback
        return value.strip().lower() in ("1", "true", "yes", "on")

    async def list_settings(self, db: AsyncSession, group: Optional[str] = None) -> list[dict]:
        """All settings (optionally one group) with encrypted values masked."""
        query = select(Setting).order_by(Setting.group, Setting.key)
        if group:
            query = query.where(Setting.group == group)
        result = await db.execute(query)
        return [masked(s) for s in result.scalars().all()]

    async def bulk_update(self, db: AsyncSession, updates: dict[str, Optional[str]]) -> list[str]:
        """
        Write the given values and refresh the cache.

        Unknown keys are skipped, as are masked placeholders echoed back
        from ``list_settings`` (so saving a form does not overwrite secrets).

        Returns:
            Keys that were written
        """
        result = await db.execute(select(Setting).where(Setting.key.in_(list(updates))))
        rows = {s.key: s for s in result.scalars().all()}

        written = []
        for key, value in updates.items():
            row = rows.get(key)
            if row is None:
                logger.warning(f"Ignoring unknown setting {key}")
                continue
            if value == MASK:
                continue
            row.value = value
            written.append(key)

        await db.commit()
        await self.refresh(db)
        logger.info(f"Settings updated: {', '.join(written) or 'none'}")
        return written


def get_settings_cache(request: Request) -> SettingsCache:
    """FastAPI dependency returning the process-wide cache."""
    return request.app.state.settings_cache
