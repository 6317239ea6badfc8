"""
Team collaboration content: discussions with replies and mentions,
notes, links and CDN-backed files.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from ..core.security import can_access_admin
from ..models.collaboration import TaskDiscussion, TaskFile, TaskLink, TaskNote
from ..models.notification import NotificationType
from ..models.task import Task, TaskAssignment
from ..models.team import Team, TeamMember, TeamRole
from ..models.user import User
from ..utils.mentions import extract_mentions, resolve_mentions
from ..utils.timezone import to_user_iso_string
from . import email_service
from .cdn_service import BunnyCdnStorage
from .notification_service import create_mention_notifications, create_notification
from .team_service import get_membership, require_team_access, team_covers_project

logger = logging.getLogger(__name__)


def _author(user: Optional[User]) -> Dict[str, Any]:
    if user is None:
        return {"user_id": None, "user_name": None}
    return {"user_id": user.id, "user_name": user.name}


async def _team_members(db: AsyncSession, team_id: int) -> List[User]:
    result = await db.execute(
        select(User).join(TeamMember, TeamMember.user_id == User.id).where(TeamMember.team_id == team_id)
    )
    return list(result.scalars().all())


async def _can_moderate(db: AsyncSession, team_id: int, user: User, owner_id: int) -> bool:
    if user.id == owner_id or can_access_admin(user.role):
        return True
    membership = await get_membership(db, team_id, user.id)
    return membership is not None and membership.role == TeamRole.LEAD.value


# Discussions

def _discussion_dict(d: TaskDiscussion, author: Optional[User]) -> Dict[str, Any]:
    return {
        "id": d.id,
        "team_id": d.team_id,
        "task_id": d.task_id,
        "parent_id": d.parent_id,
        "content": d.content,
        "type": d.type,
        "likes": d.likes,
        "created_at": to_user_iso_string(d.created_at),
        **_author(author),
    }


async def list_discussions(db: AsyncSession, team_id: int, user: User) -> List[Dict[str, Any]]:
    """Top-level posts newest first, each with its replies oldest first"""
    await require_team_access(db, team_id, user)
    result = await db.execute(
        select(TaskDiscussion, User)
        .outerjoin(User, TaskDiscussion.user_id == User.id)
        .where(and_(TaskDiscussion.team_id == team_id, TaskDiscussion.archived == False))  # noqa: E712
        .order_by(TaskDiscussion.created_at.asc(), TaskDiscussion.id.asc())
    )
    posts: Dict[int, Dict[str, Any]] = {}
    replies: List[Dict[str, Any]] = []
    for discussion, author in result.all():
        item = _discussion_dict(discussion, author)
        if discussion.parent_id is None:
            item["replies"] = []
            posts[discussion.id] = item
        else:
            replies.append(item)
    for reply in replies:
        parent = posts.get(reply["parent_id"])
        if parent is not None:
            parent["replies"].append(reply)
    return sorted(posts.values(), key=lambda p: (p["created_at"] or "", p["id"]), reverse=True)


async def _notify_mentions(db: AsyncSession, team: Team, author: User, discussion: TaskDiscussion) -> List[int]:
    handles = extract_mentions(discussion.content)
    if not handles:
        return []
    members = [m for m in await _team_members(db, team.id) if m.id != author.id]
    mentioned = resolve_mentions(handles, members)
    user_ids = [m.user_id for m in mentioned]
    await create_mention_notifications(db, user_ids, author.name, team.name, discussion.id)
    for mention in mentioned:
        email_service.send_mention_email(mention.email, mention.full_name, author.name, team.name, discussion.content[:200])
    return user_ids


async def create_discussion(
    db: AsyncSession,
    team_id: int,
    user: User,
    content: str,
    task_id: Optional[int] = None,
    type: str = "comment",
    parent_id: Optional[int] = None,
) -> Dict[str, Any]:
    team = await require_team_access(db, team_id, user)
    if not content or not content.strip():
        raise InvalidInputError("Content is required")
    if parent_id is not None:
        parent = await db.get(TaskDiscussion, parent_id)
        if parent is None or parent.team_id != team_id:
            raise NotFoundError("Discussion not found")
        task_id = task_id or parent.task_id
    if task_id is not None and await db.get(Task, task_id) is None:
        raise NotFoundError("Task not found")

    discussion = TaskDiscussion(
        team_id=team_id,
        task_id=task_id,
        user_id=user.id,
        parent_id=parent_id,
        content=content.strip(),
        type=getattr(type, "value", type),
        likes=0,
        archived=False,
    )
    db.add(discussion)
    await db.commit()
    await db.refresh(discussion)
    mentioned = await _notify_mentions(db, team, user, discussion)
    item = _discussion_dict(discussion, user)
    item["mentioned_user_ids"] = mentioned
    return item


async def _get_discussion(db: AsyncSession, team_id: int, discussion_id: int) -> TaskDiscussion:
    discussion = await db.get(TaskDiscussion, discussion_id)
    if discussion is None or discussion.team_id != team_id or discussion.archived:
        raise NotFoundError("Discussion not found")
    return discussion


async def like_discussion(db: AsyncSession, team_id: int, discussion_id: int, user: User) -> int:
    await require_team_access(db, team_id, user)
    discussion = await _get_discussion(db, team_id, discussion_id)
    discussion.likes = (discussion.likes or 0) + 1
    await db.commit()
    return discussion.likes


async def archive_discussion(db: AsyncSession, team_id: int, discussion_id: int, user: User) -> None:
    await require_team_access(db, team_id, user)
    discussion = await _get_discussion(db, team_id, discussion_id)
    if not await _can_moderate(db, team_id, user, discussion.user_id):
        raise PermissionDeniedError("Only the author or a team lead can remove this post")
    discussion.archived = True
    await db.commit()


# Notes

def _note_dict(note: TaskNote, author: Optional[User]) -> Dict[str, Any]:
    return {
        "id": note.id,
        "team_id": note.team_id,
        "task_id": note.task_id,
        "title": note.title,
        "content": note.content,
        "is_private": note.is_private,
        "created_at": to_user_iso_string(note.created_at),
        "updated_at": to_user_iso_string(note.updated_at),
        **_author(author),
    }


async def list_notes(db: AsyncSession, team_id: int, user: User) -> List[Dict[str, Any]]:
    """Shared notes plus the caller's own private notes"""
    await require_team_access(db, team_id, user)
    result = await db.execute(
        select(TaskNote, User)
        .outerjoin(User, TaskNote.user_id == User.id)
        .where(and_(
            TaskNote.team_id == team_id,
            TaskNote.archived == False,  # noqa: E712
            or_(TaskNote.is_private == False, TaskNote.user_id == user.id),  # noqa: E712
        ))
        .order_by(TaskNote.updated_at.desc(), TaskNote.id.desc())
    )
    return [_note_dict(note, author) for note, author in result.all()]


async def create_note(db: AsyncSession, team_id: int, user: User, data) -> Dict[str, Any]:
    await require_team_access(db, team_id, user)
    note = TaskNote(
        team_id=team_id,
        task_id=data.task_id,
        user_id=user.id,
        title=data.title.strip(),
        content=data.content,
        is_private=data.is_private,
        archived=False,
    )
    db.add(note)
    await db.commit()
    await db.refresh(note)
    return _note_dict(note, user)


async def _get_own_note(db: AsyncSession, team_id: int, note_id: int, user: User) -> TaskNote:
    note = await db.get(TaskNote, note_id)
    if note is None or note.team_id != team_id or note.archived:
        raise NotFoundError("Note not found")
    if note.user_id != user.id:
        if note.is_private:
            raise NotFoundError("Note not found")
        raise PermissionDeniedError("Only the author can change this note")
    return note


async def update_note(db: AsyncSession, team_id: int, note_id: int, user: User, data) -> Dict[str, Any]:
    await require_team_access(db, team_id, user)
    note = await _get_own_note(db, team_id, note_id, user)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(note, field, value)
    await db.commit()
    await db.refresh(note)
    return _note_dict(note, user)


async def archive_note(db: AsyncSession, team_id: int, note_id: int, user: User) -> None:
    await require_team_access(db, team_id, user)
    note = await _get_own_note(db, team_id, note_id, user)
    note.archived = True
    await db.commit()


# Links

def _link_dict(link: TaskLink, author: Optional[User]) -> Dict[str, Any]:
    return {
        "id": link.id,
        "team_id": link.team_id,
        "task_id": link.task_id,
        "title": link.title,
        "url": link.url,
        "description": link.description,
        "created_at": to_user_iso_string(link.created_at),
        **_author(author),
    }


async def list_links(db: AsyncSession, team_id: int, user: User) -> List[Dict[str, Any]]:
    await require_team_access(db, team_id, user)
    result = await db.execute(
        select(TaskLink, User)
        .outerjoin(User, TaskLink.user_id == User.id)
        .where(and_(TaskLink.team_id == team_id, TaskLink.archived == False))  # noqa: E712
        .order_by(TaskLink.created_at.desc(), TaskLink.id.desc())
    )
    return [_link_dict(link, author) for link, author in result.all()]


async def create_link(db: AsyncSession, team_id: int, user: User, data) -> Dict[str, Any]:
    await require_team_access(db, team_id, user)
    url = data.url.strip()
    if not url.lower().startswith(("http://", "https://")):
        raise InvalidInputError("URL must start with http:// or https://")
    link = TaskLink(
        team_id=team_id,
        task_id=data.task_id,
        user_id=user.id,
        title=data.title.strip(),
        url=url,
        description=data.description,
        archived=False,
    )
    db.add(link)
    await db.commit()
    await db.refresh(link)
    return _link_dict(link, user)


async def archive_link(db: AsyncSession, team_id: int, link_id: int, user: User) -> None:
    await require_team_access(db, team_id, user)
    link = await db.get(TaskLink, link_id)
    if link is None or link.team_id != team_id or link.archived:
        raise NotFoundError("Link not found")
    if not await _can_moderate(db, team_id, user, link.user_id):
        raise PermissionDeniedError("Only the author or a team lead can remove this link")
    link.archived = True
    await db.commit()


# Files

def _file_dict(f: TaskFile, author: Optional[User]) -> Dict[str, Any]:
    return {
        "id": f.id,
        "team_id": f.team_id,
        "task_id": f.task_id,
        "filename": f.filename,
        "file_path": f.file_path,
        "file_url": f.file_url,
        "file_size": f.file_size,
        "mime_type": f.mime_type,
        "created_at": to_user_iso_string(f.created_at),
        **_author(author),
    }


async def list_files(db: AsyncSession, team_id: int, user: User) -> List[Dict[str, Any]]:
    await require_team_access(db, team_id, user)
    result = await db.execute(
        select(TaskFile, User)
        .outerjoin(User, TaskFile.user_id == User.id)
        .where(and_(TaskFile.team_id == team_id, TaskFile.archived == False))  # noqa: E712
        .order_by(TaskFile.created_at.desc(), TaskFile.id.desc())
    )
    return [_file_dict(f, author) for f, author in result.all()]


async def upload_file(
    db: AsyncSession,
    team_id: int,
    user: User,
    storage: Optional[BunnyCdnStorage],
    filename: str,
    content: bytes,
    content_type: Optional[str] = None,
    task_id: Optional[int] = None,
) -> Dict[str, Any]:
    team = await require_team_access(db, team_id, user)
    if storage is None:
        raise InvalidInputError("File storage is not configured")
    if not content:
        raise InvalidInputError("File is empty")
    if len(content) > settings.MAX_FILE_SIZE_MB * 1024 * 1024:
        raise InvalidInputError(f"File exceeds the {settings.MAX_FILE_SIZE_MB}MB limit")

    upload = await storage.upload_file(content, filename, content_type, folder=f"teams/{team.id}")
    if not upload.success:
        logger.error(f"Upload of {filename} for team {team_id} failed: {upload.error}")
        raise InvalidInputError(upload.error or "Upload failed")

    record = TaskFile(
        team_id=team_id,
        task_id=task_id,
        user_id=user.id,
        filename=filename,
        file_path=upload.path,
        file_url=upload.url,
        file_size=len(content),
        mime_type=content_type,
        archived=False,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return _file_dict(record, user)


async def archive_file(
    db: AsyncSession, team_id: int, file_id: int, user: User, storage: Optional[BunnyCdnStorage] = None
) -> None:
    await require_team_access(db, team_id, user)
    record = await db.get(TaskFile, file_id)
    if record is None or record.team_id != team_id or record.archived:
        raise NotFoundError("File not found")
    if not await _can_moderate(db, team_id, user, record.user_id):
        raise PermissionDeniedError("Only the uploader or a team lead can remove this file")
    record.archived = True
    await db.commit()
    if storage is not None:
        result = await storage.delete_file(record.file_path)
        if not result.success:
            logger.warning(f"CDN delete of {record.file_path} failed: {result.error}")


# Search

async def search(db: AsyncSession, team_id: int, user: User, term: str) -> Dict[str, List[Dict[str, Any]]]:
    await require_team_access(db, team_id, user)
    pattern = f"%{term.strip()}%"

    discussions = await db.execute(
        select(TaskDiscussion, User)
        .outerjoin(User, TaskDiscussion.user_id == User.id)
        .where(and_(TaskDiscussion.team_id == team_id, TaskDiscussion.archived == False,  # noqa: E712
                    TaskDiscussion.content.ilike(pattern)))
    )
    notes = await db.execute(
        select(TaskNote, User)
        .outerjoin(User, TaskNote.user_id == User.id)
        .where(and_(
            TaskNote.team_id == team_id,
            TaskNote.archived == False,  # noqa: E712
            or_(TaskNote.is_private == False, TaskNote.user_id == user.id),  # noqa: E712
            or_(TaskNote.title.ilike(pattern), TaskNote.content.ilike(pattern)),
        ))
    )
    links = await db.execute(
        select(TaskLink, User)
        .outerjoin(User, TaskLink.user_id == User.id)
        .where(and_(TaskLink.team_id == team_id, TaskLink.archived == False,  # noqa: E712
                    or_(TaskLink.title.ilike(pattern), TaskLink.url.ilike(pattern))))
    )
    files = await db.execute(
        select(TaskFile, User)
        .outerjoin(User, TaskFile.user_id == User.id)
        .where(and_(TaskFile.team_id == team_id, TaskFile.archived == False,  # noqa: E712
                    TaskFile.filename.ilike(pattern)))
    )
    return {
        "discussions": [_discussion_dict(d, a) for d, a in discussions.all()],
        "notes": [_note_dict(n, a) for n, a in notes.all()],
        "links": [_link_dict(link, a) for link, a in links.all()],
        "files": [_file_dict(f, a) for f, a in files.all()],
    }


# Task assignment inside a team

async def _team_task(db: AsyncSession, team: Team, task_id: int) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if not await team_covers_project(db, team, task.project_id):
        raise PermissionDeniedError("Task does not belong to this team")
    return task


async def assign_task_to_member(db: AsyncSession, team_id: int, actor: User, task_id: int, user_id: int) -> None:
    team = await require_team_access(db, team_id, actor)
    task = await _team_task(db, team, task_id)
    if await get_membership(db, team_id, user_id) is None:
        raise InvalidInputError("User is not a member of this team")
    if await db.get(TaskAssignment, (task_id, user_id)) is None:
        db.add(TaskAssignment(task_id=task_id, user_id=user_id))
        await create_notification(
            db,
            user_id=user_id,
            type=NotificationType.TASK_ASSIGNED,
            title="New task assigned",
            message=f"{actor.name} assigned you to {task.name} in {team.name}",
            related_id=task_id,
            related_type="task",
            commit=False,
        )
        await db.commit()
        assignee = await db.get(User, user_id)
        email_service.send_task_assigned_email(assignee.email, assignee.name, task.name, team.name, actor.name)


async def unassign_task_from_member(db: AsyncSession, team_id: int, actor: User, task_id: int, user_id: int) -> None:
    team = await require_team_access(db, team_id, actor)
    await _team_task(db, team, task_id)
    assignment = await db.get(TaskAssignment, (task_id, user_id))
    if assignment is None:
        raise NotFoundError("Assignment not found")
    await db.delete(assignment)
    await db.commit()
