"""HTML bodies for outgoing email; every function returns (subject, html)"""
from html import escape
from typing import Optional, Tuple

PRIMARY_COLOR = "#d63a2e"
SECONDARY_COLOR = "#415058"

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
</head>
<body style="font-family: system-ui, -apple-system, 'Segoe UI', Roboto, sans-serif; background-color: #F2F2F3; color: #1F292E; margin: 0; padding: 0;">
  <div style="max-width: 600px; margin: 0 auto; background: #FFFFFF; border-radius: 12px; overflow: hidden;">
    <div style="background: linear-gradient(135deg, {primary} 0%, {secondary} 100%); padding: 32px 24px; text-align: center; color: white;">
      <h1 style="margin: 0; font-size: 24px;">{title}</h1>
      <p style="margin: 8px 0 0 0; font-size: 16px;">{subtitle}</p>
    </div>
    <div style="padding: 32px 24px;">
      {content}
      {button}
    </div>
    <div style="padding: 16px 24px; font-size: 12px; color: #6B7280; text-align: center;">{footer}</div>
  </div>
</body>
</html>
"""


def render(
    title: str,
    subtitle: str,
    content: str,
    button_text: Optional[str] = None,
    button_url: Optional[str] = None,
    footer_text: str = "Sent by Times10",
) -> str:
    button = ""
    if button_text and button_url:
        button = (
            f'<p style="text-align: center;"><a href="{escape(button_url)}" '
            f'style="display: inline-block; background: {PRIMARY_COLOR}; color: #FFFFFF; padding: 15px 30px; '
            f'text-decoration: none; border-radius: 8px; font-weight: 600;">{escape(button_text)}</a></p>'
        )
    return _LAYOUT.format(
        title=escape(title),
        subtitle=escape(subtitle),
        content=content,
        button=button,
        footer=escape(footer_text),
        primary=PRIMARY_COLOR,
        secondary=SECONDARY_COLOR,
    )


def invitation_email(name: str, setup_url: str) -> Tuple[str, str]:
    content = (
        f"<p>Hi {escape(name)},</p>"
        "<p>You have been invited to Times10. Set a password to activate your account. "
        "This link expires in 24 hours.</p>"
    )
    return "You're invited to Times10", render("Welcome to Times10", "Activate your account", content, "Set up account", setup_url)


def password_reset_email(name: str, reset_url: str) -> Tuple[str, str]:
    content = (
        f"<p>Hi {escape(name)},</p>"
        "<p>We received a request to reset your password. This link expires in 1 hour. "
        "If you did not request it you can ignore this email.</p>"
    )
    return "Reset your Times10 password", render("Password reset", "Choose a new password", content, "Reset password", reset_url)


def task_assigned_email(name: str, task_name: str, project_name: str, assigned_by: str, app_url: str) -> Tuple[str, str]:
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>{escape(assigned_by)} assigned you to <strong>{escape(task_name)}</strong> "
        f"in {escape(project_name)}.</p>"
    )
    return (
        f"New task assigned: {task_name}",
        render("Task assigned", project_name, content, "View task", f"{app_url}/tasks"),
    )


def due_soon_email(name: str, task_name: str, project_name: str, days_until_due: int, app_url: str) -> Tuple[str, str]:
    when = "today" if days_until_due <= 0 else ("tomorrow" if days_until_due == 1 else f"in {days_until_due} days")
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p><strong>{escape(task_name)}</strong> in {escape(project_name)} is due {when}.</p>"
    )
    return (
        f"Task due soon: {task_name}",
        render("Task due soon", project_name, content, "View task", f"{app_url}/tasks"),
    )


def overdue_email(name: str, task_name: str, project_name: str, days_overdue: int, app_url: str) -> Tuple[str, str]:
    plural = "day" if days_overdue == 1 else "days"
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p><strong>{escape(task_name)}</strong> in {escape(project_name)} is "
        f"{days_overdue} {plural} overdue.</p>"
    )
    return (
        f"Task overdue: {task_name}",
        render("Task overdue", project_name, content, "View task", f"{app_url}/tasks"),
    )


def mention_email(name: str, author_name: str, team_name: str, excerpt: str, app_url: str) -> Tuple[str, str]:
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>{escape(author_name)} mentioned you in {escape(team_name)}:</p>"
        f'<blockquote style="border-left: 4px solid {PRIMARY_COLOR}; padding-left: 12px;">{escape(excerpt)}</blockquote>'
    )
    return (
        f"You were mentioned by {author_name}",
        render("New mention", team_name, content, "Open collaboration", f"{app_url}/collaborations"),
    )
