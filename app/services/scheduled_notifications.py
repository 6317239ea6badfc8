"""Due-soon and overdue reminders for pending tasks"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project
from ..models.task import Task, TaskAssignment, TaskStatus
from ..models.user import User, UserStatus
from ..utils.timezone import ensure_utc, to_user_iso_string, utc_now
from . import email_service

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 2


async def _pending_tasks(db: AsyncSession) -> List[Tuple[Task, Project]]:
    result = await db.execute(
        select(Task, Project)
        .join(Project, Task.project_id == Project.id)
        .where(and_(
            Task.status == TaskStatus.PENDING.value,
            Task.archived == False,  # noqa: E712
            Task.due_date.isnot(None),
        ))
        .order_by(Task.due_date.asc())
    )
    return list(result.all())


async def _assignees(db: AsyncSession, task_id: int) -> List[User]:
    result = await db.execute(
        select(User)
        .join(TaskAssignment, TaskAssignment.user_id == User.id)
        .where(and_(TaskAssignment.task_id == task_id, User.status == UserStatus.ACTIVE.value))
    )
    return list(result.scalars().all())


def _send(sender, user: User, *args) -> bool:
    try:
        return bool(sender(user.email, user.name, *args))
    except Exception as e:
        logger.error(f"Reminder email to {user.email} failed: {e}")
        return False


async def run_scheduled_notifications(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Email assignees of pending tasks that are due within two days or already overdue"""
    now = ensure_utc(now) if now else utc_now()
    today = now.date()
    soon_limit = today + timedelta(days=DUE_SOON_DAYS)

    summary = {
        "due_soon_tasks": 0,
        "overdue_tasks": 0,
        "due_soon_notifications_sent": 0,
        "overdue_notifications_sent": 0,
        "checked_at": to_user_iso_string(now),
    }

    for task, project in await _pending_tasks(db):
        due_day = ensure_utc(task.due_date).date()
        if today <= due_day <= soon_limit:
            summary["due_soon_tasks"] += 1
            days_until_due = (due_day - today).days
            for user in await _assignees(db, task.id):
                if _send(email_service.send_due_soon_email, user, task.name, project.name, days_until_due):
                    summary["due_soon_notifications_sent"] += 1
        elif due_day < today:
            summary["overdue_tasks"] += 1
            days_overdue = (today - due_day).days
            for user in await _assignees(db, task.id):
                if _send(email_service.send_overdue_email, user, task.name, project.name, days_overdue):
                    summary["overdue_notifications_sent"] += 1

    logger.info(
        f"Scheduled notifications: {summary['due_soon_tasks']} due soon, {summary['overdue_tasks']} overdue, "
        f"{summary['due_soon_notifications_sent'] + summary['overdue_notifications_sent']} emails sent"
    )
    return summary
