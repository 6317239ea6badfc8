from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.security import can_access_admin
from ....db.database import get_db
from ....models.time_entry import TimeEntry
from ....models.user import User
from ....schemas.time_entry import DurationParseRequest, TimeEntryCreate, TimeEntryUpdate
from ....services import time_entry_service
from ....utils.time_parser import format_duration, format_hours, parse_time_input
from ...deps import get_current_user, require_admin_access

router = APIRouter()


def _check_owner(entry: TimeEntry, user: User) -> None:
    if entry.user_id != user.id and not can_access_admin(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own time entries"
        )


@router.get("/")
async def list_my_time_entries(
    limit: int = Query(10, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Completed entries for the current user, newest first"""
    return await time_entry_service.get_user_time_entries(db, current_user.id, limit=limit)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_time_entry(
    entry_in: TimeEntryCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    if entry_in.user_id is None:
        entry_in.user_id = current_user.id
    elif entry_in.user_id != current_user.id and not can_access_admin(current_user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only create time entries for yourself"
        )
    entry = await time_entry_service.create_time_entry(db, entry_in)
    return time_entry_service.serialize_entry(entry)


@router.get("/all")
async def list_all_time_entries(
    limit: Optional[int] = Query(None, ge=1),
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await time_entry_service.get_all_time_entries(db, limit=limit)


@router.post("/parse-duration")
async def parse_duration(
    request: DurationParseRequest,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Preview how a free-form duration will be stored"""
    seconds = parse_time_input(request.value)
    return {
        "seconds": seconds,
        "formatted": format_duration(seconds),
        "hours": format_hours(seconds),
    }


@router.get("/{entry_id}")
async def get_time_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    entry = await time_entry_service.get_time_entry(db, entry_id)
    _check_owner(entry, current_user)
    return time_entry_service.serialize_entry(entry)


@router.put("/{entry_id}")
async def update_time_entry(
    entry_id: int,
    entry_in: TimeEntryUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    entry = await time_entry_service.get_time_entry(db, entry_id)
    _check_owner(entry, current_user)
    entry = await time_entry_service.update_time_entry(db, entry_id, entry_in)
    return time_entry_service.serialize_entry(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    entry = await time_entry_service.get_time_entry(db, entry_id)
    _check_owner(entry, current_user)
    await time_entry_service.delete_time_entry(db, entry_id)
