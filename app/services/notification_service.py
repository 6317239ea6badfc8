"""Notification service: in-app notifications and mention fan-out."""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, and_, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import NotFoundError
from ..models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationNotFound(NotFoundError):
    pass


async def create_notification(
    db: AsyncSession,
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_id: Optional[int] = None,
    related_type: Optional[str] = None,
    commit: bool = True,
) -> Notification:
    notif = Notification(
        user_id=user_id,
        type=type.value if isinstance(type, NotificationType) else type,
        title=title,
        message=message,
        related_id=related_id,
        related_type=related_type,
        read=False,
    )
    db.add(notif)
    if commit:
        await db.commit()
        await db.refresh(notif)
    else:
        await db.flush()
    return notif


async def create_mention_notifications(
    db: AsyncSession,
    user_ids: Iterable[int],
    author_name: str,
    context_name: str,
    discussion_id: Optional[int] = None,
) -> List[Notification]:
    """One notification per mentioned user; failures are logged and skipped"""
    created = []
    for user_id in user_ids:
        try:
            async with db.begin_nested():
                notif = await create_notification(
                    db,
                    user_id=user_id,
                    type=NotificationType.MENTION,
                    title=f"You were mentioned by {author_name}",
                    message=f"{author_name} mentioned you in {context_name}",
                    related_id=discussion_id,
                    related_type="discussion",
                    commit=False,
                )
            created.append(notif)
        except Exception as e:
            logger.error(f"Failed to create mention notification for user {user_id}: {e}")
    await db.commit()
    return created


async def get_user_notifications(
    db: AsyncSession, user_id: int, limit: int = 50, unread_only: bool = False
) -> List[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_owned(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    result = await db.execute(
        select(Notification).where(and_(Notification.id == notification_id, Notification.user_id == user_id))
    )
    notif = result.scalar_one_or_none()
    if notif is None:
        raise NotificationNotFound("Notification not found")
    return notif


async def mark_as_read(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    notif = await _get_owned(db, notification_id, user_id)
    notif.read = True
    await db.commit()
    await db.refresh(notif)
    return notif


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(and_(Notification.user_id == user_id, Notification.read == False))  # noqa: E712
        .values(read=True)
    )
    await db.commit()
    return result.rowcount or 0


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            and_(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
        )
    )
    return result.scalar() or 0


async def delete_notification(db: AsyncSession, notification_id: int, user_id: int) -> None:
    notif = await _get_owned(db, notification_id, user_id)
    await db.delete(notif)
    await db.commit()
