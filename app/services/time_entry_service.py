"""
Time entry and timer operations.

All times are stored in UTC. Component times (hours/minutes on a task date)
arrive in the browser's local time together with its timezone offset.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, and_, or_, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidInputError, NotFoundError
from ..models.time_entry import TimeEntry
from ..models.task import Task, TaskStatus
from ..models.project import Project
from ..models.client import Client
from ..models.user import User
from ..utils.timezone import (
    calculate_duration,
    create_user_date,
    ensure_utc,
    from_client_millis,
    from_user_iso_string,
    local_to_utc,
    next_day,
    parse_date,
    to_user_iso_string,
    utc_now,
)
from .validation_service import (
    TimeEntryValidationError,
    has_end_components,
    has_start_components,
    validate_create_request,
    validate_time_order,
    validate_update_request,
)

logger = logging.getLogger(__name__)

TIMER_RUNNING_MESSAGE = "Cannot create manual duration entry while timer is running. Please stop the timer first."


class TimeEntryNotFound(NotFoundError):
    pass


class TaskNotFound(NotFoundError):
    pass


class TimerNotFound(NotFoundError):
    pass


class TimerConflictError(InvalidInputError):
    pass


def _running_clause():
    return and_(
        TimeEntry.start_time.isnot(None),
        TimeEntry.end_time.is_(None),
        TimeEntry.duration_manual.is_(None),
    )


def _completed_clause():
    return or_(TimeEntry.end_time.isnot(None), TimeEntry.duration_manual.isnot(None))


def _parse_iso(value: str) -> datetime:
    try:
        return from_user_iso_string(value)
    except ValueError as e:
        raise TimeEntryValidationError(str(e))


def _local(date_str: str, hours: int, minutes: int, offset: int) -> datetime:
    try:
        return local_to_utc(date_str, hours, minutes, offset)
    except ValueError as e:
        raise TimeEntryValidationError(str(e))


def _component_range(req) -> Tuple[datetime, datetime]:
    """Start/end from local hours and minutes; an end earlier than the start belongs to the next day"""
    start = _local(req.task_date, req.start_hours, req.start_minutes, req.timezone_offset)
    end_date = req.task_date
    if (req.end_hours, req.end_minutes) < (req.start_hours, req.start_minutes):
        end_date = next_day(req.task_date)
    end = _local(end_date, req.end_hours, req.end_minutes, req.timezone_offset)
    return start, end


def _with_task_date(value: datetime, task_date: Optional[str]) -> datetime:
    """Move value onto task_date, keeping its UTC time of day"""
    if not task_date:
        return value
    day = parse_date(task_date)
    return value.replace(year=day.year, month=day.month, day=day.day)


async def get_task_or_raise(db: AsyncSession, task_id: int) -> Task:
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFound("Task not found")
    return task


async def get_running_timer_entry(db: AsyncSession, user_id: int) -> Optional[TimeEntry]:
    result = await db.execute(
        select(TimeEntry)
        .where(and_(TimeEntry.user_id == user_id, _running_clause()))
        .order_by(TimeEntry.start_time.desc())
        .limit(1)
    )
    return result.scalars().first()


async def _mark_task_in_progress(task: Task) -> None:
    if task.status == TaskStatus.PENDING.value:
        task.status = TaskStatus.IN_PROGRESS.value
        logger.info(f"Task {task.id} moved to in-progress after first time entry")


async def create_time_entry(db: AsyncSession, req) -> TimeEntry:
    """Create a time entry in ISO, component or duration mode"""
    duration_seconds = validate_create_request(req)
    task = await get_task_or_raise(db, req.task_id)

    entry = TimeEntry(user_id=req.user_id, task_id=task.id, notes=req.notes)

    if req.start_time and req.end_time:
        start = _parse_iso(req.start_time)
        end = _parse_iso(req.end_time)
        validate_time_order(start, end)
        entry.start_time, entry.end_time = start, end
        entry.duration_manual = calculate_duration(start, end)
    elif has_start_components(req) and has_end_components(req):
        start, end = _component_range(req)
        validate_time_order(start, end)
        entry.start_time, entry.end_time = start, end
        entry.duration_manual = calculate_duration(start, end)
    else:
        if await get_running_timer_entry(db, req.user_id) is not None:
            raise TimeEntryValidationError(TIMER_RUNNING_MESSAGE)
        entry.duration_manual = duration_seconds
        if req.task_date:
            entry.created_at = create_user_date(req.task_date, 12, 0)

    db.add(entry)
    await _mark_task_in_progress(task)
    await db.commit()
    await db.refresh(entry)
    logger.info(f"Created time entry {entry.id} for user {entry.user_id} on task {entry.task_id}")
    return entry


async def get_time_entry(db: AsyncSession, entry_id: int) -> TimeEntry:
    result = await db.execute(select(TimeEntry).where(TimeEntry.id == entry_id))
    entry = result.scalar_one_or_none()
    if entry is None:
        raise TimeEntryNotFound("Time entry not found")
    return entry


async def update_time_entry(db: AsyncSession, entry_id: int, req) -> TimeEntry:
    duration_seconds = validate_update_request(req)
    entry = await get_time_entry(db, entry_id)

    existing_start = ensure_utc(entry.start_time)
    existing_end = ensure_utc(entry.end_time)
    start_given = bool(req.start_time) or has_start_components(req)
    end_given = bool(req.end_time) or has_end_components(req)

    if start_given and end_given:
        if req.start_time and req.end_time:
            start = _with_task_date(_parse_iso(req.start_time), req.task_date)
            end = _with_task_date(_parse_iso(req.end_time), req.task_date)
        elif has_start_components(req) and has_end_components(req):
            start, end = _component_range(req)
        else:
            start = _parse_iso(req.start_time) if req.start_time else _local(
                req.task_date, req.start_hours, req.start_minutes, req.timezone_offset)
            end = _parse_iso(req.end_time) if req.end_time else _local(
                req.task_date, req.end_hours, req.end_minutes, req.timezone_offset)
        validate_time_order(start, end)
        entry.start_time, entry.end_time = start, end
        entry.duration_manual = calculate_duration(start, end)
    elif start_given:
        if req.start_time:
            start = _with_task_date(_parse_iso(req.start_time), req.task_date)
        else:
            start = _local(req.task_date, req.start_hours, req.start_minutes, req.timezone_offset)
        if existing_end is not None:
            if start >= existing_end:
                raise TimeEntryValidationError("Start time must be before existing end time")
            entry.duration_manual = calculate_duration(start, existing_end)
        entry.start_time = start
    elif end_given:
        if req.end_time:
            end = _with_task_date(_parse_iso(req.end_time), req.task_date)
        else:
            end = _local(req.task_date, req.end_hours, req.end_minutes, req.timezone_offset)
        if existing_start is not None:
            if end <= existing_start:
                raise TimeEntryValidationError("End time must be after existing start time")
            entry.duration_manual = calculate_duration(existing_start, end)
        entry.end_time = end
    elif duration_seconds is not None or req.duration_manual is not None:
        entry.duration_manual = duration_seconds if duration_seconds is not None else req.duration_manual
        entry.start_time = create_user_date(req.task_date, 12, 0) if req.task_date else existing_start
        entry.end_time = None

    if req.created_at:
        entry.created_at = _parse_iso(req.created_at)
    if req.task_id is not None:
        await get_task_or_raise(db, req.task_id)
        entry.task_id = req.task_id
    if req.notes is not None:
        entry.notes = req.notes

    await db.commit()
    await db.refresh(entry)
    logger.info(f"Updated time entry {entry.id}")
    return entry


async def delete_time_entry(db: AsyncSession, entry_id: int) -> None:
    entry = await get_time_entry(db, entry_id)
    await db.delete(entry)
    await db.commit()
    logger.info(f"Deleted time entry {entry_id}")


def _details_query():
    return (
        select(TimeEntry, User.name, Task.name, Project.name, Client.name, Project.id, Client.id)
        .join(User, TimeEntry.user_id == User.id)
        .join(Task, TimeEntry.task_id == Task.id)
        .join(Project, Task.project_id == Project.id)
        .join(Client, Project.client_id == Client.id)
    )


def serialize_entry(entry: TimeEntry, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "task_id": entry.task_id,
        "start_time": to_user_iso_string(entry.start_time),
        "end_time": to_user_iso_string(entry.end_time),
        "duration_manual": entry.duration_manual,
        "notes": entry.notes,
        "created_at": to_user_iso_string(entry.created_at),
        "updated_at": to_user_iso_string(entry.updated_at),
        "duration": entry.duration_seconds(now),
    }


def _detail_row(row) -> Dict[str, Any]:
    entry, user_name, task_name, project_name, client_name, project_id, client_id = row
    data = serialize_entry(entry)
    data.update({
        "user_name": user_name,
        "task_name": task_name,
        "project_name": project_name,
        "project_id": project_id,
        "client_name": client_name,
        "client_id": client_id,
    })
    return data


async def get_user_time_entries(db: AsyncSession, user_id: int, limit: int = 10) -> List[Dict[str, Any]]:
    """Completed entries for a user, newest first, hiding archived clients/projects"""
    query = (
        _details_query()
        .where(and_(
            TimeEntry.user_id == user_id,
            _completed_clause(),
            Client.archived == False,  # noqa: E712
            Project.archived == False,  # noqa: E712
        ))
        .order_by(func.coalesce(TimeEntry.start_time, TimeEntry.created_at).desc())
        .limit(limit)
    )
    result = await db.execute(query)
    return [_detail_row(row) for row in result.all()]


async def get_all_time_entries(db: AsyncSession, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = (
        _details_query()
        .where(and_(
            _completed_clause(),
            Client.archived == False,  # noqa: E712
            Project.archived == False,  # noqa: E712
        ))
        .order_by(func.coalesce(TimeEntry.start_time, TimeEntry.created_at).desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return [_detail_row(row) for row in result.all()]


async def get_project_user_time(db: AsyncSession, project_id: int) -> List[Dict[str, Any]]:
    """Seconds per user on one project"""
    result = await db.execute(
        select(TimeEntry, User.name)
        .join(Task, TimeEntry.task_id == Task.id)
        .join(User, TimeEntry.user_id == User.id)
        .where(and_(Task.project_id == project_id, _completed_clause()))
    )
    totals: Dict[int, Dict[str, Any]] = {}
    for entry, user_name in result.all():
        bucket = totals.setdefault(entry.user_id, {"user_id": entry.user_id, "user_name": user_name, "total_seconds": 0})
        bucket["total_seconds"] += entry.duration_seconds()
    return sorted(totals.values(), key=lambda r: r["total_seconds"], reverse=True)


# Timers

async def get_ongoing_timer(db: AsyncSession, user_id: int, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    now = now or utc_now()
    entry = await get_running_timer_entry(db, user_id)
    if entry is None:
        return None
    task_result = await db.execute(
        select(Task.name, Project.name, Client.name)
        .join(Project, Task.project_id == Project.id)
        .join(Client, Project.client_id == Client.id)
        .where(Task.id == entry.task_id)
    )
    names = task_result.first()
    data = serialize_entry(entry, now)
    data["elapsed_seconds"] = entry.duration_seconds(now)
    if names:
        data.update({"task_name": names[0], "project_name": names[1], "client_name": names[2]})
    return data


async def start_timer(
    db: AsyncSession,
    user_id: int,
    task_id: Optional[int],
    notes: Optional[str] = None,
    client_time_ms: Optional[int] = None,
) -> TimeEntry:
    if not task_id:
        raise TimeEntryValidationError("Task ID is required")
    if await get_running_timer_entry(db, user_id) is not None:
        raise TimerConflictError("User already has an ongoing timer")
    task = await get_task_or_raise(db, task_id)

    start = from_client_millis(client_time_ms) if client_time_ms else utc_now()
    entry = TimeEntry(user_id=user_id, task_id=task.id, start_time=start.replace(microsecond=0), notes=notes)
    db.add(entry)
    await _mark_task_in_progress(task)
    await db.commit()
    await db.refresh(entry)
    logger.info(f"Started timer {entry.id} for user {user_id} on task {task_id}")
    return entry


def _stop(entry: TimeEntry, end: datetime) -> None:
    start = ensure_utc(entry.start_time)
    if end < start:
        end = start
    entry.end_time = end
    entry.duration_manual = calculate_duration(start, end)


async def stop_timer(
    db: AsyncSession,
    user_id: int,
    client_time_ms: Optional[int] = None,
    notes: Optional[str] = None,
) -> TimeEntry:
    entry = await get_running_timer_entry(db, user_id)
    if entry is None:
        raise TimerNotFound("No ongoing timer found")
    end = from_client_millis(client_time_ms) if client_time_ms else utc_now()
    _stop(entry, end.replace(microsecond=0))
    if notes is not None:
        entry.notes = notes
    await db.commit()
    await db.refresh(entry)
    logger.info(f"Stopped timer {entry.id} for user {user_id} after {entry.duration_manual}s")
    return entry


async def get_all_ongoing_timers(db: AsyncSession, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or utc_now()
    result = await db.execute(
        _details_query().where(_running_clause()).order_by(TimeEntry.start_time.asc())
    )
    timers = []
    for row in result.all():
        data = _detail_row(row)
        data["elapsed_seconds"] = row[0].duration_seconds(now)
        data["duration"] = data["elapsed_seconds"]
        timers.append(data)
    return timers


async def clear_all_timers(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Stop every running timer at now; returns how many were stopped"""
    now = (now or utc_now()).replace(microsecond=0)
    result = await db.execute(select(TimeEntry).where(_running_clause()))
    entries = result.scalars().all()
    for entry in entries:
        _stop(entry, now)
    await db.commit()
    logger.info(f"Cleared {len(entries)} running timers")
    return len(entries)


async def reassign_entries(db: AsyncSession, entry_ids: List[int], task_id: int) -> int:
    if not entry_ids:
        return 0
    result = await db.execute(
        update(TimeEntry).where(TimeEntry.id.in_(entry_ids)).values(task_id=task_id)
    )
    await db.commit()
    return result.rowcount or 0
