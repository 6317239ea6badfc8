from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....schemas.time_entry import TimerStart, TimerStop
from ....services import time_entry_service
from ...deps import get_current_user, require_admin_access

router = APIRouter()


@router.get("/ongoing")
async def get_ongoing_timer(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """The caller's running timer, or null"""
    return await time_entry_service.get_ongoing_timer(db, current_user.id)


@router.post("/ongoing", status_code=status.HTTP_201_CREATED)
async def start_timer(
    timer: TimerStart,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    entry = await time_entry_service.start_timer(
        db, current_user.id, timer.task_id, notes=timer.notes, client_time_ms=timer.client_time
    )
    return time_entry_service.serialize_entry(entry)


@router.post("/stop")
async def stop_timer(
    timer: TimerStop,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    entry = await time_entry_service.stop_timer(
        db, current_user.id, client_time_ms=timer.client_time, notes=timer.notes
    )
    return time_entry_service.serialize_entry(entry)


@router.get("/all-ongoing")
async def get_all_ongoing_timers(
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await time_entry_service.get_all_ongoing_timers(db)


@router.post("/clear-all")
async def clear_all_timers(
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    stopped = await time_entry_service.clear_all_timers(db)
    return {"stopped": stopped}
