from typing import Any, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....schemas.collaboration import (
    CollaborationTaskAssign,
    CommentCreate,
    DiscussionCreate,
    LinkCreate,
    NoteCreate,
    NoteUpdate,
)
from ....services import collaboration_service
from ....services.cdn_service import BunnyCdnStorage
from ...deps import get_current_user, get_storage

router = APIRouter()


# Discussions

@router.get("/{team_id}/discussions")
async def list_discussions(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.list_discussions(db, team_id, current_user)


@router.post("/{team_id}/discussions", status_code=status.HTTP_201_CREATED)
async def create_discussion(
    team_id: int,
    discussion_in: DiscussionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Post to the team board; @mentions notify matching team members"""
    return await collaboration_service.create_discussion(
        db, team_id, current_user, discussion_in.content, task_id=discussion_in.task_id, type=discussion_in.type
    )


@router.post("/{team_id}/discussions/{discussion_id}/comments", status_code=status.HTTP_201_CREATED)
async def reply_to_discussion(
    team_id: int,
    discussion_id: int,
    comment_in: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.create_discussion(
        db, team_id, current_user, comment_in.content, parent_id=discussion_id
    )


@router.post("/{team_id}/discussions/{discussion_id}/like")
async def like_discussion(
    team_id: int,
    discussion_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    likes = await collaboration_service.like_discussion(db, team_id, discussion_id, current_user)
    return {"id": discussion_id, "likes": likes}


@router.delete("/{team_id}/discussions/{discussion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_discussion(
    team_id: int,
    discussion_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    await collaboration_service.archive_discussion(db, team_id, discussion_id, current_user)


# Notes

@router.get("/{team_id}/notes")
async def list_notes(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.list_notes(db, team_id, current_user)


@router.post("/{team_id}/notes", status_code=status.HTTP_201_CREATED)
async def create_note(
    team_id: int,
    note_in: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.create_note(db, team_id, current_user, note_in)


@router.put("/{team_id}/notes/{note_id}")
async def update_note(
    team_id: int,
    note_id: int,
    note_in: NoteUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.update_note(db, team_id, note_id, current_user, note_in)


@router.delete("/{team_id}/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_note(
    team_id: int,
    note_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    await collaboration_service.archive_note(db, team_id, note_id, current_user)


# Links

@router.get("/{team_id}/links")
async def list_links(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.list_links(db, team_id, current_user)


@router.post("/{team_id}/links", status_code=status.HTTP_201_CREATED)
async def create_link(
    team_id: int,
    link_in: LinkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.create_link(db, team_id, current_user, link_in)


@router.delete("/{team_id}/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_link(
    team_id: int,
    link_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    await collaboration_service.archive_link(db, team_id, link_id, current_user)


# Files

@router.get("/{team_id}/files")
async def list_files(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.list_files(db, team_id, current_user)


@router.post("/{team_id}/files", status_code=status.HTTP_201_CREATED)
async def upload_file(
    team_id: int,
    file: UploadFile = File(...),
    task_id: Optional[int] = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Optional[BunnyCdnStorage] = Depends(get_storage)
) -> Any:
    content = await file.read()
    return await collaboration_service.upload_file(
        db,
        team_id,
        current_user,
        storage,
        file.filename or "upload",
        content,
        content_type=file.content_type,
        task_id=task_id,
    )


@router.delete("/{team_id}/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_file(
    team_id: int,
    file_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Optional[BunnyCdnStorage] = Depends(get_storage)
) -> None:
    await collaboration_service.archive_file(db, team_id, file_id, current_user, storage)


@router.get("/{team_id}/search")
async def search_collaboration(
    team_id: int,
    q: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await collaboration_service.search(db, team_id, current_user, q)


# Task assignment

@router.post("/{team_id}/tasks/assign")
async def assign_task(
    team_id: int,
    assignment: CollaborationTaskAssign,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await collaboration_service.assign_task_to_member(db, team_id, current_user, assignment.task_id, assignment.user_id)
    return {"task_id": assignment.task_id, "user_id": assignment.user_id, "assigned": True}


@router.delete("/{team_id}/tasks/assign")
async def unassign_task(
    team_id: int,
    assignment: CollaborationTaskAssign,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await collaboration_service.unassign_task_from_member(db, team_id, current_user, assignment.task_id, assignment.user_id)
    return {"task_id": assignment.task_id, "user_id": assignment.user_id, "assigned": False}
