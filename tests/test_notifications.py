"""Tests for notification events and notifiers."""

import asyncio
import logging
from dataclasses import asdict
from datetime import datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from kanban.services.notification_service import (
    COMMENT_EXCERPT_LENGTH,
    JOB_NAMES,
    ArqNotifier,
    CommentAddedEvent,
    InlineNotifier,
    MemberAddedEvent,
    NullNotifier,
    ProjectMovedEvent,
    dispatch_background,
    drain_background_tasks,
    excerpt,
    project_recipient_emails,
    stage_label,
)


def person(email: str, is_active: bool = True, deleted_at=None):
    return SimpleNamespace(id=uuid4(), email=email, is_active=is_active, deleted_at=deleted_at)


def moved_event(recipients=("team@example.com",)) -> ProjectMovedEvent:
    return ProjectMovedEvent(
        project_id=str(uuid4()),
        project_title="Billing migration",
        from_stage="Not Started",
        to_stage="Development",
        moved_by_name="Ada Admin",
        justification="Fast track",
        recipient_emails=list(recipients),
    )


class FakePool:
    """Stands in for ArqRedis."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.jobs: list[tuple[str, dict]] = []

    async def enqueue_job(self, name, payload):
        if self.fail:
            raise ConnectionError("redis down")
        self.jobs.append((name, payload))
        return SimpleNamespace(job_id="job-1")


class FakeMail:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, object]] = []

    async def send_member_added(self, event):
        self.sent.append(("member_added", event))
        return True

    async def send_project_moved(self, event):
        if self.fail:
            raise RuntimeError("smtp exploded")
        self.sent.append(("project_moved", event))
        return True

    async def send_comment_added(self, event):
        self.sent.append(("comment_added", event))
        return True


class TestRecipients:
    """Tests for project_recipient_emails."""

    def test_owner_and_members_minus_actor(self):
        owner = person("owner@example.com")
        alice = person("alice@example.com")
        bob = person("bob@example.com")
        project = SimpleNamespace(
            owner=owner,
            members=[SimpleNamespace(user=alice), SimpleNamespace(user=bob)],
        )

        emails = project_recipient_emails(project, exclude_user_id=alice.id)

        assert emails == ["owner@example.com", "bob@example.com"]

    def test_inactive_and_deleted_users_are_skipped(self):
        owner = person("owner@example.com", is_active=False)
        gone = person("gone@example.com", deleted_at=datetime(2026, 1, 1))
        project = SimpleNamespace(owner=owner, members=[SimpleNamespace(user=gone)])

        assert project_recipient_emails(project) == []

    def test_owner_who_is_also_member_is_listed_once(self):
        owner = person("owner@example.com")
        project = SimpleNamespace(owner=owner, members=[SimpleNamespace(user=owner)])

        assert project_recipient_emails(project) == ["owner@example.com"]

    def test_extra_users_are_included(self):
        owner = person("owner@example.com")
        newcomer = person("new@example.com")
        project = SimpleNamespace(owner=owner, members=[])

        emails = project_recipient_emails(project, exclude_user_id=owner.id, extra_users=[newcomer])

        assert emails == ["new@example.com"]


class TestHelpers:

    def test_excerpt_truncates(self):
        text = "x" * (COMMENT_EXCERPT_LENGTH + 10)

        assert excerpt(text) == "x" * COMMENT_EXCERPT_LENGTH + "..."
        assert excerpt("short") == "short"

    def test_stage_label(self):
        assert stage_label("IT_MODELING") == "IT Modeling"
        assert stage_label("UNKNOWN") == "UNKNOWN"


class TestArqNotifier:
    """Tests for enqueueing notification jobs."""

    @pytest.mark.asyncio
    async def test_enqueues_job_with_payload(self):
        pool = FakePool()
        event = moved_event()

        await ArqNotifier(pool).notify_project_moved(event)

        assert pool.jobs == [("send_project_moved_email", asdict(event))]

    @pytest.mark.asyncio
    async def test_every_event_kind_has_a_job(self):
        pool = FakePool()
        notifier = ArqNotifier(pool)

        await notifier.notify_member_added(MemberAddedEvent("p", "T", "New", "Owner", ["a@example.com"]))
        await notifier.notify_comment_added(CommentAddedEvent("p", "T", "Author", "Hi", ["a@example.com"]))

        assert [name for name, _ in pool.jobs] == [JOB_NAMES["member_added"], JOB_NAMES["comment_added"]]

    @pytest.mark.asyncio
    async def test_no_recipients_skips_enqueue(self):
        pool = FakePool()

        await ArqNotifier(pool).notify_project_moved(moved_event(recipients=()))

        assert pool.jobs == []

    @pytest.mark.asyncio
    async def test_enqueue_failure_is_swallowed(self, caplog):
        caplog.set_level(logging.ERROR)

        await ArqNotifier(FakePool(fail=True)).notify_project_moved(moved_event())

        assert "Failed to dispatch project_moved notification" in caplog.text


class TestInlineNotifier:
    """Tests for in-process delivery."""

    @pytest.mark.asyncio
    async def test_routes_to_mail_service(self):
        mail = FakeMail()
        notifier = InlineNotifier(mail)
        event = moved_event()

        await notifier.notify_project_moved(event)
        await notifier.notify_comment_added(CommentAddedEvent("p", "T", "Author", "Hi", ["a@example.com"]))

        assert [kind for kind, _ in mail.sent] == ["project_moved", "comment_added"]
        assert mail.sent[0][1] is event

    @pytest.mark.asyncio
    async def test_mail_failure_is_swallowed(self, caplog):
        caplog.set_level(logging.ERROR)

        await InlineNotifier(FakeMail(fail=True)).notify_project_moved(moved_event())

        assert "smtp exploded" in caplog.text


class TestNullNotifier:

    @pytest.mark.asyncio
    async def test_drops_events(self):
        await NullNotifier().notify_project_moved(moved_event())


class TestDispatchBackground:
    """Tests for fire-and-forget scheduling."""

    @pytest.mark.asyncio
    async def test_returns_before_delivery(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()

        task = dispatch_background(slow())
        assert not task.done()

        await started.wait()
        release.set()
        await drain_background_tasks(timeout=5)
        assert task.done()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        caplog.set_level(logging.ERROR)

        async def boom():
            raise RuntimeError("delivery failed")

        task = dispatch_background(boom())
        await drain_background_tasks(timeout=5)
        # Let the done callback run
        await asyncio.sleep(0)

        assert task.done()
        assert "Background notification task failed" in caplog.text
