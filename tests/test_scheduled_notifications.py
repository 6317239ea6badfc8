from datetime import datetime, timezone

import pytest

from app.services import scheduled_notifications
from app.services.scheduled_notifications import run_scheduled_notifications

from conftest import make_task, make_user

NOW = datetime(2026, 4, 10, 8, 0, tzinfo=timezone.utc)


async def _due(db, task, day, status="pending"):
    task.due_date = datetime(2026, 4, day, 17, 0, tzinfo=timezone.utc)
    task.status = status
    await db.commit()


@pytest.mark.asyncio
async def test_due_soon_and_overdue_emails(db, smtp):
    ann = await make_user(db, "ann@example.com", "Ann")
    bob = await make_user(db, "bob@example.com", "Bob")
    await make_user(db, "gone@example.com", "Gone", status="inactive")

    soon = await make_task(db, name="Soon", assignees=[ann, bob])
    late = await make_task(db, name="Late", project_name="Other", client_name="Beta", assignees=[ann])
    later = await make_task(db, name="Later", project_name="Third", client_name="Gamma", assignees=[ann])
    done = await make_task(db, name="Done", project_name="Fourth", client_name="Delta", assignees=[ann])
    await _due(db, soon, 12)
    await _due(db, late, 7)
    await _due(db, later, 20)
    await _due(db, done, 7, status="completed")

    summary = await run_scheduled_notifications(db, now=NOW)
    assert summary["due_soon_tasks"] == 1
    assert summary["overdue_tasks"] == 1
    assert summary["due_soon_notifications_sent"] == 2
    assert summary["overdue_notifications_sent"] == 1
    assert summary["checked_at"] == "2026-04-10T08:00:00.000Z"

    recipients = sorted(s.sent[0][1][0] for s in smtp.instances)
    assert recipients == ["ann@example.com", "ann@example.com", "bob@example.com"]


@pytest.mark.asyncio
async def test_inactive_assignees_are_skipped(db):
    gone = await make_user(db, "gone@example.com", "Gone", status="inactive")
    task = await make_task(db, name="Soon", assignees=[gone])
    await _due(db, task, 10)

    summary = await run_scheduled_notifications(db, now=NOW)
    assert summary["due_soon_tasks"] == 1
    assert summary["due_soon_notifications_sent"] == 0


@pytest.mark.asyncio
async def test_send_failures_are_counted_as_unsent(db, monkeypatch):
    ann = await make_user(db, "ann@example.com", "Ann")
    task = await make_task(db, name="Late", assignees=[ann])
    await _due(db, task, 1)

    def boom(*args):
        raise RuntimeError("smtp down")

    monkeypatch.setattr(scheduled_notifications.email_service, "send_overdue_email", boom)
    summary = await run_scheduled_notifications(db, now=NOW)
    assert summary["overdue_tasks"] == 1
    assert summary["overdue_notifications_sent"] == 0
