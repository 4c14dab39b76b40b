"""Outbound notifications for project events.

Mutating operations publish an event after their transaction commits and
never wait for delivery:

- ``ArqNotifier`` enqueues a job on Redis; ``kanban.worker`` renders and
  sends the mail.
- ``InlineNotifier`` sends through ``MailService`` in this process, used
  when Redis is unavailable.

Every notifier method swallows and logs its own failures, and
``dispatch_background`` wraps the call in a task whose failure is logged
instead of raised. A failed notification never surfaces to the caller.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Iterable, Optional, Protocol
from uuid import UUID

from fastapi import Request

from ..models.project import Project
from ..models.project_stage import STAGE_LABELS, StageName
from ..models.user import User

logger = logging.getLogger(__name__)

COMMENT_EXCERPT_LENGTH = 300


# ============================================================================
# Events
# ============================================================================


@dataclass
class MemberAddedEvent:
    project_id: str
    project_title: str
    added_user_name: str
    added_by_name: str
    recipient_emails: list[str] = field(default_factory=list)


@dataclass
class ProjectMovedEvent:
    project_id: str
    project_title: str
    from_stage: str
    to_stage: str
    moved_by_name: str
    justification: Optional[str] = None
    recipient_emails: list[str] = field(default_factory=list)


@dataclass
class CommentAddedEvent:
    project_id: str
    project_title: str
    comment_author_name: str
    comment_content: str
    recipient_emails: list[str] = field(default_factory=list)


def stage_label(stage: str) -> str:
    """Human-readable stage name for messages."""
    try:
        return STAGE_LABELS[StageName(stage)]
    except ValueError:
        return stage


def excerpt(content: str, limit: int = COMMENT_EXCERPT_LENGTH) -> str:
    """Truncate long comment text for mail bodies."""
    return content if len(content) <= limit else content[:limit] + "..."


def project_recipient_emails(
    project: Project,
    exclude_user_id: Optional[UUID] = None,
    extra_users: Iterable[User] = (),
) -> list[str]:
    """
    Owner, members and any extra users, active only, minus the actor.

    Expects ``project.owner`` and ``project.members[].user`` to be loaded.
    """
    candidates: list[User] = []
    if project.owner is not None:
        candidates.append(project.owner)
    candidates.extend(m.user for m in project.members if m.user is not None)
    candidates.extend(extra_users)

    emails: dict[UUID, str] = {}
    for user in candidates:
        if user.id == exclude_user_id:
            continue
        if not user.is_active or user.deleted_at is not None:
            continue
        emails.setdefault(user.id, user.email)
    return list(emails.values())


# ============================================================================
# Notifiers
# ============================================================================


class Notifier(Protocol):
    """What the engine and project service need from a notification channel."""

    async def notify_member_added(self, event: MemberAddedEvent) -> None: ...

    async def notify_project_moved(self, event: ProjectMovedEvent) -> None: ...

    async def notify_comment_added(self, event: CommentAddedEvent) -> None: ...


class _SafeNotifier:
    """Shared skip-and-swallow behaviour for concrete notifiers."""

    async def _deliver(self, kind: str, event: Any) -> None:
        raise NotImplementedError

    async def _safely(self, kind: str, event: Any) -> None:
        if not event.recipient_emails:
            logger.debug(f"No recipients for {kind} on project {event.project_id}, skipping")
            return
        try:
            await self._deliver(kind, event)
        except Exception as e:
            logger.error(f"Failed to dispatch {kind} notification for project {event.project_id}: {e}", exc_info=True)

    async def notify_member_added(self, event: MemberAddedEvent) -> None:
        await self._safely("member_added", event)

    async def notify_project_moved(self, event: ProjectMovedEvent) -> None:
        await self._safely("project_moved", event)

    async def notify_comment_added(self, event: CommentAddedEvent) -> None:
        await self._safely("comment_added", event)


# Job names registered in kanban.worker.WorkerSettings.functions
JOB_NAMES = {
    "member_added": "send_member_added_email",
    "project_moved": "send_project_moved_email",
    "comment_added": "send_comment_added_email",
}


class ArqNotifier(_SafeNotifier):
    """Publishes each event as an arq job."""

    def __init__(self, pool):
        """
        Args:
            pool: ``arq.connections.ArqRedis`` from ``arq.create_pool``
        """
        self.pool = pool

    async def _deliver(self, kind: str, event: Any) -> None:
        job = await self.pool.enqueue_job(JOB_NAMES[kind], asdict(event))
        logger.info(f"Enqueued {JOB_NAMES[kind]} for project {event.project_id} (job={getattr(job, 'job_id', None)})")


class InlineNotifier(_SafeNotifier):
    """Sends mail from this process. Used when no job queue is available."""

    def __init__(self, mail_service):
        self.mail = mail_service

    async def _deliver(self, kind: str, event: Any) -> None:
        if kind == "member_added":
            await self.mail.send_member_added(event)
        elif kind == "project_moved":
            await self.mail.send_project_moved(event)
        elif kind == "comment_added":
            await self.mail.send_comment_added(event)


class NullNotifier(_SafeNotifier):
    """Drops every event. Used when notifications are disabled."""

    async def _deliver(self, kind: str, event: Any) -> None:
        logger.debug(f"Notifications disabled, dropping {kind} for project {event.project_id}")


# ============================================================================
# Fire-and-forget dispatch
# ============================================================================

# Strong references so pending tasks are not garbage collected mid-flight
_background_tasks: set[asyncio.Task] = set()


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background notification task failed", exc_info=exc)


def dispatch_background(call: Awaitable[None]) -> asyncio.Task:
    """Schedule a notifier call without awaiting it."""
    task = asyncio.ensure_future(call)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


async def drain_background_tasks(timeout: Optional[float] = None) -> None:
    """Wait for scheduled notifications to finish (shutdown and tests)."""
    if _background_tasks:
        await asyncio.wait(list(_background_tasks), timeout=timeout)


def get_notifier(request: Request) -> Notifier:
    """FastAPI dependency returning the notifier chosen at startup."""
    return request.app.state.notifier
