import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from ..core.config import settings
from . import email_templates

logger = logging.getLogger(__name__)


def _send_smtp(
    *,
    host: str,
    port: int,
    username: str,
    password: str,
    from_email: str,
    from_name: Optional[str] = None,
    to_email: str,
    subject: str,
    body: str,
    html: bool = False,
    security: str = 'starttls',
) -> bool:
    try:
        if html:
            msg = MIMEMultipart('alternative')
            msg.attach(MIMEText(body, 'html', 'utf-8'))
        else:
            msg = MIMEText(body, 'plain', 'utf-8')
        msg['Subject'] = subject
        msg['From'] = f"{from_name} <{from_email}>" if from_name else from_email
        msg['To'] = to_email

        if security == 'ssl':
            with smtplib.SMTP_SSL(host, port) as server:
                server.login(username, password)
                server.sendmail(from_email, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(host, port) as server:
                if security == 'starttls':
                    server.starttls()
                server.login(username, password)
                server.sendmail(from_email, [to_email], msg.as_string())
        logger.info(f"Sent email '{subject}' to {to_email}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email '{subject}' to {to_email}: {e}")
        return False


def is_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def send_email(to_email: str, subject: str, body: str, html: bool = False) -> bool:
    """Send an email using SMTP settings. Returns True on success or if SMTP is not configured (no-op)."""
    if not is_configured():
        logger.debug(f"SMTP not configured; skipping email '{subject}' to {to_email}")
        return True
    return _send_smtp(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        from_email=settings.SMTP_FROM or settings.SMTP_USERNAME,
        from_name=settings.SMTP_FROM_NAME,
        to_email=to_email,
        subject=subject,
        body=body,
        html=html,
        security=(settings.SMTP_SECURITY or 'starttls').lower(),
    )


def send_invitation_email(to_email: str, name: str, token: str) -> bool:
    subject, body = email_templates.invitation_email(name, f"{settings.APP_URL}/setup-account?token={token}")
    return send_email(to_email, subject, body, html=True)


def send_password_reset_email(to_email: str, name: str, token: str) -> bool:
    subject, body = email_templates.password_reset_email(name, f"{settings.APP_URL}/reset-password?token={token}")
    return send_email(to_email, subject, body, html=True)


def send_task_assigned_email(to_email: str, name: str, task_name: str, project_name: str, assigned_by: str) -> bool:
    subject, body = email_templates.task_assigned_email(name, task_name, project_name, assigned_by, settings.APP_URL)
    return send_email(to_email, subject, body, html=True)


def send_due_soon_email(to_email: str, name: str, task_name: str, project_name: str, days_until_due: int) -> bool:
    subject, body = email_templates.due_soon_email(name, task_name, project_name, days_until_due, settings.APP_URL)
    return send_email(to_email, subject, body, html=True)


def send_overdue_email(to_email: str, name: str, task_name: str, project_name: str, days_overdue: int) -> bool:
    subject, body = email_templates.overdue_email(name, task_name, project_name, days_overdue, settings.APP_URL)
    return send_email(to_email, subject, body, html=True)


def send_mention_email(to_email: str, name: str, author_name: str, team_name: str, excerpt: str) -> bool:
    subject, body = email_templates.mention_email(name, author_name, team_name, excerpt, settings.APP_URL)
    return send_email(to_email, subject, body, html=True)
