"""
ARQ Worker Configuration

Background job processing with Redis-backed task queue.
Renders and sends the notification mail that the API enqueues through
``ArqNotifier``.

Run with:
    arq kanban.worker.WorkerSettings
"""

import logging
from typing import Any
from urllib.parse import urlparse

from arq import cron
from arq.connections import RedisSettings

from .config import settings
from .database import async_session_maker
from .services.mail_service import MailService
from .services.notification_service import (
    CommentAddedEvent,
    MemberAddedEvent,
    ProjectMovedEvent,
)
from .services.settings_service import SettingsCache

logger = logging.getLogger(__name__)


# Parse Redis URL into components for ARQ
# Format: redis://host:port/db or redis://:password@host:port/db
def parse_redis_url(url: str) -> RedisSettings:
    """Parse Redis URL into ARQ RedisSettings."""
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path.lstrip("/") or 0),
    )


# =============================================================================
# Mail Jobs
# =============================================================================


def _mail(ctx: dict[str, Any]) -> MailService:
    return ctx["mail"]


async def send_member_added_email(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    """Mail the team that someone joined the project."""
    event = MemberAddedEvent(**payload)
    sent = await _mail(ctx).send_member_added(event)
    logger.info(f"member_added mail for project {event.project_id}: sent={sent}")
    return {"sent": sent, "recipients": len(event.recipient_emails)}


async def send_project_moved_email(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    """Mail the team that the project changed stage."""
    event = ProjectMovedEvent(**payload)
    sent = await _mail(ctx).send_project_moved(event)
    logger.info(f"project_moved mail for project {event.project_id}: sent={sent}")
    return {"sent": sent, "recipients": len(event.recipient_emails)}


async def send_comment_added_email(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    """Mail the team about a new comment."""
    event = CommentAddedEvent(**payload)
    sent = await _mail(ctx).send_comment_added(event)
    logger.info(f"comment_added mail for project {event.project_id}: sent={sent}")
    return {"sent": sent, "recipients": len(event.recipient_emails)}


async def refresh_settings(ctx: dict[str, Any]) -> dict[str, Any]:
    """Pick up SMTP changes saved through the API since the last run."""
    cache: SettingsCache = ctx["settings_cache"]
    async with async_session_maker() as db:
        await cache.refresh(db)
    return {"refreshed": True}


# =============================================================================
# Startup/Shutdown Hooks
# =============================================================================

async def startup(ctx: dict[str, Any]) -> None:
    """Load runtime settings and build the mail service."""
    logger.info("ARQ worker starting up...")

    cache = SettingsCache(async_session_maker)
    await cache.load()
    ctx["settings_cache"] = cache
    ctx["mail"] = MailService(cache)

    if not ctx["mail"].is_configured():
        logger.warning("SMTP is not configured; notification mail will only be logged")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when worker stops."""
    logger.info("ARQ worker shutting down...")


# =============================================================================
# Worker Settings
# =============================================================================

class WorkerSettings:
    """ARQ worker configuration."""

    # Redis connection
    redis_settings = parse_redis_url(settings.redis_url)

    # Job functions that can be called via arq.enqueue_job()
    functions = [
        send_member_added_email,
        send_project_moved_email,
        send_comment_added_email,
    ]

    # Re-read settings once a minute
    cron_jobs = [
        cron(refresh_settings, second={0}),
    ]

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Worker behavior
    max_jobs = settings.arq_max_jobs
    job_timeout = settings.arq_job_timeout
    keep_result = 3600  # Keep results for 1 hour

    # Health check
    health_check_interval = 30
