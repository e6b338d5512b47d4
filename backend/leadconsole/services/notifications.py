"""
Notification dispatch for staff mail.

Provides:
- NotificationDispatcher.notify(recipients, template, payload): render a
  Jinja2 template and send it over SMTP
- Templates: ``new_lead`` and ``daily_summary``

Mail is a best-effort side channel: ``notify`` logs failures and returns,
it never raises into the business operation that triggered it.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Iterable, Optional, Tuple

from jinja2 import Template

from ..core.config import settings
from ..utils.batching import unique_in_order


logger = logging.getLogger(__name__)


# =============================================================================
# Templates: (subject, body) Jinja2 strings per template name
# =============================================================================

NOTIFICATION_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "new_lead": (
        "New lead: {{ name }} ({{ source }})",
        """
<h2 style="font-family: Arial, Helvetica, sans-serif; color: #1A1A1A;">New lead received</h2>
<table cellpadding="4" cellspacing="0" border="0" style="font-family: Arial, Helvetica, sans-serif; font-size: 14px;">
    <tr><td><strong>Name</strong></td><td>{{ name }}</td></tr>
    <tr><td><strong>Phone</strong></td><td>{{ phone }}</td></tr>
    <tr><td><strong>Region</strong></td><td>{{ region }}</td></tr>
    <tr><td><strong>Source</strong></td><td>{{ source }}</td></tr>
    <tr><td><strong>Received</strong></td><td>{{ created_at }}</td></tr>
</table>
""",
    ),
    "daily_summary": (
        "Daily summary for {{ day }}: {{ total }} leads",
        """
<h2 style="font-family: Arial, Helvetica, sans-serif; color: #1A1A1A;">Leads received on {{ day }}</h2>
<p style="font-family: Arial, Helvetica, sans-serif; font-size: 14px;">Total: <strong>{{ total }}</strong></p>
<ul style="font-family: Arial, Helvetica, sans-serif; font-size: 14px;">
{% for source, count in counts_by_source.items() %}    <li>{{ source }}: {{ count }}</li>
{% endfor %}</ul>
<table cellpadding="4" cellspacing="0" border="1" style="font-family: Arial, Helvetica, sans-serif; font-size: 13px; border-collapse: collapse;">
    <tr><th>Name</th><th>Phone</th><th>Region</th><th>Source</th><th>Received</th></tr>
{% for lead in leads %}    <tr><td>{{ lead.name }}</td><td>{{ lead.phone }}</td><td>{{ lead.region }}</td><td>{{ lead.source }}</td><td>{{ lead.created_at }}</td></tr>
{% endfor %}</table>
""",
    ),
}


class NotificationDispatcher:
    """Dispatch-and-forget mail sink for staff notifications."""

    def __init__(self):
        self.enabled = settings.mail_enabled
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.from_email = settings.mail_from
        self.subject_prefix = settings.mail_subject_prefix

    def render_template(self, template_name: str, context: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        """
        Render subject and HTML body for a template.

        Returns:
            (subject, html) or None when the template does not exist
        """
        template = NOTIFICATION_TEMPLATES.get(template_name)
        if template is None:
            logger.error(f"Template {template_name} not found")
            return None

        subject_str, body_str = template
        subject = Template(subject_str).render(**context).strip()
        if self.subject_prefix:
            subject = f"{self.subject_prefix} {subject}"
        return subject, Template(body_str).render(**context)

    def send_email(self, to_emails: list[str], subject: str, html_content: str) -> bool:
        """
        Send one message to all recipients.

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.from_email
            msg["To"] = ", ".join(to_emails)
            msg.attach(MIMEText(html_content, "html"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                # Only use TLS and login if credentials are provided
                if self.smtp_username and self.smtp_password:
                    server.starttls()
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Notification '{subject}' sent to {len(to_emails)} recipients")
            return True

        except Exception as e:
            logger.error(f"Failed to send notification to {to_emails}: {e}")
            return False

    def notify(self, recipients: Iterable[str], template: str, payload: Dict[str, Any]) -> None:
        """
        Render ``template`` with ``payload`` and mail it to ``recipients``.

        Never raises.
        """
        try:
            to_emails = unique_in_order(r.strip() for r in recipients if r)
            if not to_emails:
                logger.info(f"No recipients for '{template}' notification; skipped")
                return

            rendered = self.render_template(template, payload)
            if rendered is None:
                return
            subject, html = rendered

            if not self.enabled:
                logger.info(f"Mail disabled; would send '{subject}' to {to_emails}")
                return

            self.send_email(to_emails, subject, html)
        except Exception as e:
            logger.error(f"Notification '{template}' failed: {e}")


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency / module-level accessor for the shared dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
