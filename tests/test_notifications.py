import pytest

from app.core.errors import NotFoundError
from app.models.notification import NotificationType
from app.services import notification_service

from conftest import make_user


@pytest.mark.asyncio
async def test_notification_lifecycle(db):
    ann = await make_user(db, "ann@example.com", "Ann")
    bob = await make_user(db, "bob@example.com", "Bob")

    first = await notification_service.create_notification(
        db, user_id=ann.id, type=NotificationType.SYSTEM, title="Hello", message="Welcome aboard"
    )
    await notification_service.create_notification(
        db, user_id=ann.id, type="task_assigned", title="Task", message="You have a task", related_id=5, related_type="task"
    )
    assert first.type == "system"
    assert await notification_service.get_unread_count(db, ann.id) == 2

    listed = await notification_service.get_user_notifications(db, ann.id)
    assert [n.title for n in listed] == ["Task", "Hello"]

    await notification_service.mark_as_read(db, first.id, ann.id)
    assert await notification_service.get_unread_count(db, ann.id) == 1
    assert [n.title for n in await notification_service.get_user_notifications(db, ann.id, unread_only=True)] == ["Task"]

    with pytest.raises(NotFoundError):
        await notification_service.mark_as_read(db, first.id, bob.id)
    with pytest.raises(NotFoundError):
        await notification_service.delete_notification(db, first.id, bob.id)

    assert await notification_service.mark_all_as_read(db, ann.id) == 1
    assert await notification_service.get_unread_count(db, ann.id) == 0

    await notification_service.delete_notification(db, first.id, ann.id)
    assert len(await notification_service.get_user_notifications(db, ann.id)) == 1


@pytest.mark.asyncio
async def test_mention_notifications(db):
    ann = await make_user(db, "ann@example.com", "Ann")
    bob = await make_user(db, "bob@example.com", "Bob")
    created = await notification_service.create_mention_notifications(db, [ann.id, bob.id], "Cara", "Core Team", 7)
    assert len(created) == 2
    assert created[0].title == "You were mentioned by Cara"
    assert created[0].related_type == "discussion"
    assert created[0].related_id == 7


@pytest.mark.asyncio
async def test_mention_failure_for_one_user_keeps_the_rest(db, monkeypatch):
    ann = await make_user(db, "ann@example.com", "Ann")
    bob = await make_user(db, "bob@example.com", "Bob")
    cara = await make_user(db, "cara@example.com", "Cara")
    original = notification_service.create_notification

    async def failing_for_bob(db, **kwargs):
        if kwargs["user_id"] == bob.id:
            raise RuntimeError("insert failed")
        return await original(db, **kwargs)

    monkeypatch.setattr(notification_service, "create_notification", failing_for_bob)
    created = await notification_service.create_mention_notifications(db, [ann.id, bob.id, cara.id], "Dee", "Core Team", 3)

    assert [n.user_id for n in created] == [ann.id, cara.id]
    await db.rollback()
    assert await notification_service.get_unread_count(db, ann.id) == 1
    assert await notification_service.get_unread_count(db, bob.id) == 0
    assert await notification_service.get_unread_count(db, cara.id) == 1
