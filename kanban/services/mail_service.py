"""
Mail rendering and SMTP delivery.

Templates are plain HTML strings filled with ``str.format``; every body is
wrapped in a shared layout. Delivery settings come from the settings
cache at send time:

    smtp_host        SMTP host (empty: log-only mode, nothing is sent)
    smtp_port        SMTP port (default 587)
    smtp_use_tls     STARTTLS after connect (default true)
    smtp_username    SMTP login
    smtp_password    SMTP password
    smtp_from_email  From address

Send failures are logged and reported through the return value.
"""

import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .notification_service import CommentAddedEvent, MemberAddedEvent, ProjectMovedEvent, excerpt
from .settings_service import SettingsCache

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Templates
# ═══════════════════════════════════════════════════════════════════════════

_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"></head>
<body style="margin:0;padding:0;background:#f4f5f7;font-family:Arial,Helvetica,sans-serif;">
  <div style="max-width:600px;margin:32px auto;background:#ffffff;border-radius:8px;overflow:hidden;">
    <div style="background:#1a1a2e;padding:24px 32px;color:#ffffff;font-size:20px;font-weight:bold;">{app_name}</div>
    <div style="padding:24px 32px 8px;"><h2 style="margin:0;color:#1a1a2e;font-size:18px;">{title}</h2></div>
    <div style="padding:8px 32px 24px;">{body}</div>
    <div style="padding:16px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;font-size:12px;color:#9ca3af;">
      This message was sent automatically by {app_name}.<br>
      <a href="{app_url}/kanban" style="color:#4f46e5;text-decoration:none;">Open the board</a>
    </div>
  </div>
</body>
</html>"""

_PROJECT_BOX = (
    '<div style="background:#f3f4f6;border-left:4px solid #4f46e5;padding:12px 16px;'
    'border-radius:4px;margin-bottom:16px;"><strong style="color:#1a1a2e;">{project_title}</strong></div>'
)

_TEMPLATES: dict[str, dict[str, str]] = {
    "member_added": {
        "subject": '[Kanban] {added_user_name} was added to "{project_title}"',
        "title": "New project member",
        "body": (
            '<p style="color:#374151;font-size:14px;"><strong>{added_by_name}</strong> added '
            "<strong>{added_user_name}</strong> as a member of:</p>" + _PROJECT_BOX
        ),
    },
    "project_moved": {
        "subject": '[Kanban] "{project_title}" moved to {to_stage}',
        "title": "Project changed stage",
        "body": (
            '<p style="color:#374151;font-size:14px;"><strong>{moved_by_name}</strong> moved the project to a new stage:</p>'
            + _PROJECT_BOX
            + '<p style="font-size:13px;"><span style="background:#fee2e2;color:#991b1b;padding:6px 12px;border-radius:4px;">{from_stage}</span>'
            ' &rarr; <span style="background:#d1fae5;color:#065f46;padding:6px 12px;border-radius:4px;">{to_stage}</span></p>'
            "{justification_block}"
        ),
    },
    "comment_added": {
        "subject": '[Kanban] New comment on "{project_title}"',
        "title": "New comment",
        "body": (
            '<p style="color:#374151;font-size:14px;"><strong>{comment_author_name}</strong> commented on the project:</p>'
            + _PROJECT_BOX
            + '<div style="background:#fffbeb;border-left:4px solid #f59e0b;padding:12px 16px;border-radius:4px;">'
            '<p style="margin:0;color:#374151;font-size:14px;white-space:pre-wrap;">{comment_excerpt}</p></div>'
        ),
    },
}


def _escaped(values: dict) -> dict:
    return {k: html.escape(v) if isinstance(v, str) else v for k, v in values.items()}


def _single_line(values: dict) -> dict:
    """Collapse line breaks so values can go into a mail header."""
    return {k: " ".join(v.split()) if isinstance(v, str) else v for k, v in values.items()}


class MailService:
    """Renders notification mail and sends it over SMTP."""

    def __init__(self, settings_cache: SettingsCache):
        self.settings = settings_cache

    def is_configured(self) -> bool:
        """Check if SMTP is configured."""
        return bool(self.settings.get("smtp_host"))

    def render(self, template_name: str, raw: dict | None = None, **values) -> tuple[str, str]:
        """
        Fill a template and wrap it in the layout.

        ``values`` are HTML-escaped; ``raw`` holds pre-rendered fragments.

        Returns:
            (subject, html) tuple
        """
        template = _TEMPLATES[template_name]
        safe = _escaped(values)
        subject = template["subject"].format(**_single_line(values))
        body = template["body"].format(**safe, **(raw or {}))
        page = _LAYOUT.format(
            app_name=html.escape(self.settings.get("app_name", "Kanban")),
            app_url=self.settings.get("app_url", "http://localhost:3000").rstrip("/"),
            title=template["title"],
            body=body,
        )
        return subject, page

    async def send(self, to: list[str], subject: str, html_body: str) -> bool:
        """
        Deliver one message to all recipients.

        Returns:
            True if handed to the SMTP server, False if only logged or failed.
        """
        if not to:
            return False

        if not self.is_configured():
            logger.info(f"[MAIL PREVIEW] To: {', '.join(to)} | Subject: {subject}")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.settings.get("smtp_from_email", "noreply@kanban.local")
        message["To"] = ", ".join(to)
        message.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            await asyncio.to_thread(self._deliver, message, to)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {', '.join(to)}: {e}")
            return False

        logger.info(f"Email sent to {', '.join(to)}: {subject}")
        return True

    def _deliver(self, message: MIMEMultipart, to: list[str]) -> None:
        host = self.settings.get("smtp_host")
        port = self.settings.get_int("smtp_port", 587)
        with smtplib.SMTP(host, port, timeout=30) as server:
            if self.settings.get_bool("smtp_use_tls", True):
                server.starttls()
            username = self.settings.get("smtp_username")
            if username:
                server.login(username, self.settings.get("smtp_password", ""))
            server.sendmail(message["From"], to, message.as_string())

    # ── Notification mail ─────────────────────────────────────────────

    async def send_member_added(self, event: MemberAddedEvent) -> bool:
        subject, page = self.render(
            "member_added",
            project_title=event.project_title,
            added_user_name=event.added_user_name,
            added_by_name=event.added_by_name,
        )
        return await self.send(event.recipient_emails, subject, page)

    async def send_project_moved(self, event: ProjectMovedEvent) -> bool:
        justification_block = ""
        if event.justification:
            justification_block = (
                '<p style="color:#6b7280;font-size:13px;">Justification: '
                f"{html.escape(event.justification)}</p>"
            )
        subject, page = self.render(
            "project_moved",
            project_title=event.project_title,
            from_stage=event.from_stage,
            to_stage=event.to_stage,
            moved_by_name=event.moved_by_name,
            raw={"justification_block": justification_block},
        )
        return await self.send(event.recipient_emails, subject, page)

    async def send_comment_added(self, event: CommentAddedEvent) -> bool:
        subject, page = self.render(
            "comment_added",
            project_title=event.project_title,
            comment_author_name=event.comment_author_name,
            comment_excerpt=excerpt(event.comment_content),
        )
        return await self.send(event.recipient_emails, subject, page)
