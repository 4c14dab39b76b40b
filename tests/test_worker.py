"""Tests for ARQ worker jobs."""

from dataclasses import asdict

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kanban import worker
from kanban.services.notification_service import (
    JOB_NAMES,
    CommentAddedEvent,
    MemberAddedEvent,
    ProjectMovedEvent,
)
from kanban.services.settings_service import SettingsCache
from kanban.worker import (
    WorkerSettings,
    parse_redis_url,
    refresh_settings,
    send_comment_added_email,
    send_member_added_email,
    send_project_moved_email,
)


class FakeMail:
    """Records what the jobs hand to the mail service."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent = []

    async def send_member_added(self, event):
        self.sent.append(event)
        return self.result

    async def send_project_moved(self, event):
        self.sent.append(event)
        return self.result

    async def send_comment_added(self, event):
        self.sent.append(event)
        return self.result


# =============================================================================
# Configuration
# =============================================================================


class TestWorkerSettings:

    def test_parse_redis_url(self):
        redis = parse_redis_url("redis://:s3cret@cache.internal:6380/2")

        assert redis.host == "cache.internal"
        assert redis.port == 6380
        assert redis.password == "s3cret"
        assert redis.database == 2

    def test_parse_redis_url_defaults(self):
        redis = parse_redis_url("redis://")

        assert redis.host == "localhost"
        assert redis.port == 6379
        assert redis.password is None
        assert redis.database == 0

    def test_every_enqueued_job_is_registered(self):
        registered = {f.__name__ for f in WorkerSettings.functions}

        assert set(JOB_NAMES.values()) == registered

    def test_settings_refresh_is_scheduled(self):
        assert len(WorkerSettings.cron_jobs) == 1
        assert WorkerSettings.cron_jobs[0].coroutine is refresh_settings


# =============================================================================
# Mail Jobs
# =============================================================================


class TestMailJobs:

    @pytest.mark.asyncio
    async def test_member_added(self):
        mail = FakeMail()
        event = MemberAddedEvent(
            project_id="p-1",
            project_title="Billing migration",
            added_user_name="Mark Member",
            added_by_name="Olivia Owner",
            recipient_emails=["owner@example.com", "member@example.com"],
        )

        result = await send_member_added_email({"mail": mail}, asdict(event))

        assert result == {"sent": True, "recipients": 2}
        assert mail.sent == [event]

    @pytest.mark.asyncio
    async def test_project_moved(self):
        mail = FakeMail()
        event = ProjectMovedEvent(
            project_id="p-1",
            project_title="Billing migration",
            from_stage="BUSINESS_MODELING",
            to_stage="DEVELOPMENT",
            moved_by_name="Ada Admin",
            justification="Vendor signed early",
            recipient_emails=["owner@example.com"],
        )

        result = await send_project_moved_email({"mail": mail}, asdict(event))

        assert result == {"sent": True, "recipients": 1}
        assert mail.sent[0].justification == "Vendor signed early"

    @pytest.mark.asyncio
    async def test_comment_added_reports_failed_send(self):
        mail = FakeMail(result=False)
        event = CommentAddedEvent(
            project_id="p-1",
            project_title="Billing migration",
            comment_author_name="Mark Member",
            comment_content="Looks good",
            recipient_emails=["owner@example.com"],
        )

        result = await send_comment_added_email({"mail": mail}, asdict(event))

        assert result == {"sent": False, "recipients": 1}


class TestRefreshSettings:

    @pytest.mark.asyncio
    async def test_picks_up_database_changes(self, engine, db_session, settings_cache, monkeypatch):
        monkeypatch.setattr(
            worker,
            "async_session_maker",
            async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
        )
        worker_cache = SettingsCache()
        await settings_cache.bulk_update(db_session, {"smtp_host": "mail.example.com"})

        result = await refresh_settings({"settings_cache": worker_cache})

        assert result == {"refreshed": True}
        assert worker_cache.get("smtp_host") == "mail.example.com"
