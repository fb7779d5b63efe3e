import asyncio
import html
import logging
import smtplib
from datetime import date, datetime
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Tuple

from app.core import config

logger = logging.getLogger(__name__)

EMAIL_WRAPPER = """
<div style="font-family: Poppins, sans-serif; padding: 20px;">
  {content}
</div>
"""


async def send_email(to: str, subject: str, html_body: str) -> None:
    """Deliver one HTML email over SMTP. Raises on transport failure."""

    def _send_sync() -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((config.MAIL_FROM_NAME, config.SMTP_USER or ""))
        msg["To"] = to
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        with smtplib.SMTP(host=config.SMTP_HOST, port=config.SMTP_PORT, timeout=15) as s:
            s.ehlo()
            if config.SMTP_STARTTLS:
                s.starttls()
                s.ehlo()
            if config.SMTP_USER and config.SMTP_PASSWORD:
                s.login(config.SMTP_USER, config.SMTP_PASSWORD)
            s.send_message(msg)

    await asyncio.to_thread(_send_sync)
    logger.info(f"Sent email '{subject}' to {to}")


# --- Templates --- #

def render_assignment_email(
    title: str, description: Optional[str], due_date: Optional[date]
) -> Tuple[str, str]:
    formatted_due = due_date.isoformat() if due_date else "No due date"
    content = (
        '<h2 style="color: #007BFF;">You\'ve been assigned a new task!</h2>'
        f"<p><strong>Task:</strong> {html.escape(title)}</p>"
        f"<p><strong>Description:</strong> {html.escape(description or 'No description provided')}</p>"
        f"<p><strong>Due Date:</strong> {formatted_due}</p>"
    )
    return f"New Task Assigned: {title}", EMAIL_WRAPPER.format(content=content)


def render_reminder_email(
    title: str,
    description: Optional[str],
    due_date: Optional[date],
    overdue: bool,
) -> Tuple[str, str]:
    """Overdue variant when the due date has passed, recurring variant otherwise."""
    safe_title = html.escape(title)
    if overdue:
        subject = f"🔥 OVERDUE: {title}"
        body = (
            f'<p>This is a reminder that your task "<strong>{safe_title}</strong>" '
            f"is PAST its due date of {due_date.isoformat() if due_date else ''}. "
            "Please update its status.</p>"
        )
    else:
        subject = f"⏰ Reminder: {title}"
        body = f'<p>This is your recurring reminder for the task: "<strong>{safe_title}</strong>".</p>'

    content = (
        "<h2>Task Reminder</h2>"
        f"{body}"
        f"<p><strong>Description:</strong> {html.escape(description or 'No description provided')}</p>"
    )
    return subject, EMAIL_WRAPPER.format(content=content)


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC")
