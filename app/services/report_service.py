"""
Reporting over time entries: period resolution, daily series, per-user totals.

Durations are computed in Python from the loaded entries so the same code
runs against Postgres and sqlite.
"""
import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.time_entry import TimeEntry
from ..models.task import Task
from ..models.project import Project
from ..models.client import Client
from ..models.user import User
from ..utils.time_parser import format_hours
from ..utils.timezone import ensure_utc, parse_date
from .pdf_service import pdf_service

logger = logging.getLogger(__name__)

PERIODS = ("last7", "last14", "last30", "week", "month", "year", "custom")
DEFAULT_PERIOD = "last7"
FINANCIAL_KEYS = ("total_cost", "cost", "pay_rate", "hourly_rate")


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def resolve_period(
    period: Optional[str],
    now: datetime,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Tuple[datetime, datetime]:
    """Return inclusive day bounds for a named period"""
    today = ensure_utc(now).date()
    period = period or DEFAULT_PERIOD

    if period == "custom":
        if start_date and end_date:
            return _day_start(parse_date(start_date)), _day_end(parse_date(end_date))
        period = "last30"

    if period in ("last7", "last14", "last30"):
        days = int(period[4:])
        return _day_start(today - timedelta(days=days)), _day_end(today)
    if period == "week":
        sunday = today - timedelta(days=(today.weekday() + 1) % 7)
        return _day_start(sunday), _day_end(sunday + timedelta(days=6))
    if period == "month":
        first = today.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return _day_start(first), _day_end(next_month - timedelta(days=1))
    if period == "year":
        return _day_start(date(today.year, 1, 1)), _day_end(date(today.year, 12, 31))

    logger.debug(f"Unknown report period '{period}', using {DEFAULT_PERIOD}")
    return resolve_period(DEFAULT_PERIOD, now)


def entry_anchor(entry: TimeEntry) -> Optional[datetime]:
    """The instant that places an entry on the calendar: start, or created_at for manual entries"""
    if entry.start_time is not None:
        return ensure_utc(entry.start_time)
    if entry.duration_manual is not None:
        return ensure_utc(entry.created_at)
    return None


def entry_in_range(entry: TimeEntry, start: datetime, end: datetime) -> bool:
    anchor = entry_anchor(entry)
    return anchor is not None and start <= anchor <= end


async def load_entries(
    db: AsyncSession,
    start: datetime,
    end: datetime,
    user_id: Optional[int] = None,
    project_id: Optional[int] = None,
    client_id: Optional[int] = None,
) -> List[Tuple[TimeEntry, User, Task, Project, Client]]:
    """Entries anchored inside [start, end], skipping archived clients and projects"""
    conditions = [
        Client.archived == False,  # noqa: E712
        Project.archived == False,  # noqa: E712
        or_(
            and_(TimeEntry.start_time.isnot(None), TimeEntry.start_time >= start, TimeEntry.start_time <= end),
            and_(TimeEntry.start_time.is_(None), TimeEntry.created_at >= start, TimeEntry.created_at <= end),
        ),
    ]
    if user_id:
        conditions.append(TimeEntry.user_id == user_id)
    if project_id:
        conditions.append(Project.id == project_id)
    if client_id:
        conditions.append(Client.id == client_id)

    result = await db.execute(
        select(TimeEntry, User, Task, Project, Client)
        .join(User, TimeEntry.user_id == User.id)
        .join(Task, TimeEntry.task_id == Task.id)
        .join(Project, Task.project_id == Project.id)
        .join(Client, Project.client_id == Client.id)
        .where(and_(*conditions))
    )
    return [tuple(row) for row in result.all() if entry_in_range(row[0], start, end)]


def _cost(seconds: int, pay_rate) -> float:
    return round(seconds / 3600 * float(pay_rate or 0), 2)


def _totals(seconds: int, cost: float) -> Dict[str, Any]:
    return {
        "total_seconds": seconds,
        "total_hours": format_hours(seconds),
        "total_cost": round(cost, 2),
    }


async def today_stats(db: AsyncSession, user_id: int, now: datetime) -> Dict[str, Any]:
    today = ensure_utc(now).date()
    rows = await load_entries(db, _day_start(today), _day_end(today), user_id=user_id)
    seconds = sum(row[0].duration_seconds(now) for row in rows)
    return {
        "total_seconds": seconds,
        "total_hours": format_hours(seconds),
        "entry_count": len(rows),
        "date": today.isoformat(),
    }


async def weekly_stats(db: AsyncSession, user_id: int, now: datetime) -> Dict[str, Any]:
    start, end = resolve_period("week", now)
    rows = await load_entries(db, start, end, user_id=user_id)
    seconds = sum(row[0].duration_seconds(now) for row in rows)
    return {
        "total_seconds": seconds,
        "total_hours": format_hours(seconds),
        "period": "This Week",
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "date_range_display": f"{start.month}/{start.day}-{end.month}/{end.day}",
    }


async def time_series(
    db: AsyncSession,
    period: Optional[str],
    now: datetime,
    user_id: Optional[int] = None,
    project_id: Optional[int] = None,
    client_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict[str, Any]:
    """One row per day in the period, including days with no time"""
    start, end = resolve_period(period, now, start_date, end_date)
    rows = await load_entries(db, start, end, user_id=user_id, project_id=project_id, client_id=client_id)

    buckets: Dict[date, List[float]] = {}
    day = start.date()
    while day <= end.date():
        buckets[day] = [0, 0.0]
        day += timedelta(days=1)

    for entry, user, _task, _project, _client in rows:
        seconds = entry.duration_seconds(now)
        bucket = buckets.setdefault(entry_anchor(entry).date(), [0, 0.0])
        bucket[0] += seconds
        bucket[1] += _cost(seconds, user.pay_rate)

    series = [dict(date=d.isoformat(), **_totals(s, c)) for d, (s, c) in sorted(buckets.items())]
    total_seconds = sum(s for s, _ in buckets.values())
    total_cost = sum(c for _, c in buckets.values())
    return {
        "period": period or DEFAULT_PERIOD,
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "series": series,
        **_totals(total_seconds, total_cost),
    }


async def team_stats(
    db: AsyncSession,
    period: Optional[str],
    now: datetime,
    user_id: Optional[int] = None,
    project_id: Optional[int] = None,
    client_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict[str, Any]:
    """Per-user totals for the period, busiest first"""
    start, end = resolve_period(period, now, start_date, end_date)
    rows = await load_entries(db, start, end, user_id=user_id, project_id=project_id, client_id=client_id)

    per_user: Dict[int, Dict[str, Any]] = {}
    for entry, user, _task, _project, _client in rows:
        seconds = entry.duration_seconds(now)
        stats = per_user.setdefault(user.id, {
            "user_id": user.id,
            "user_name": user.name,
            "user_email": user.email,
            "total_seconds": 0,
            "total_cost": 0.0,
            "entry_count": 0,
        })
        stats["total_seconds"] += seconds
        stats["total_cost"] += _cost(seconds, user.pay_rate)
        stats["entry_count"] += 1

    users = []
    for stats in sorted(per_user.values(), key=lambda s: s["total_seconds"], reverse=True):
        stats["total_hours"] = format_hours(stats["total_seconds"])
        stats["total_cost"] = round(stats["total_cost"], 2)
        users.append(stats)

    total_seconds = sum(u["total_seconds"] for u in users)
    total_cost = sum(u["total_cost"] for u in users)
    return {
        "period": period or DEFAULT_PERIOD,
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "users": users,
        "entry_count": len(rows),
        **_totals(total_seconds, total_cost),
    }


async def daily_duration_totals(
    db: AsyncSession, user_id: int, start: datetime, end: datetime, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    rows = await load_entries(db, start, end, user_id=user_id)
    totals: Dict[date, int] = {}
    for entry, *_ in rows:
        day = entry_anchor(entry).date()
        totals[day] = totals.get(day, 0) + entry.duration_seconds(now)
    return [
        {"date": d.isoformat(), "total_seconds": s, "total_hours": format_hours(s)}
        for d, s in sorted(totals.items())
    ]


async def task_daily_totals(
    db: AsyncSession, user_id: int, day: date, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    rows = await load_entries(db, _day_start(day), _day_end(day), user_id=user_id)
    totals: Dict[int, Dict[str, Any]] = {}
    for entry, _user, task, project, client in rows:
        item = totals.setdefault(task.id, {
            "task_id": task.id,
            "task_name": task.name,
            "project_name": project.name,
            "client_name": client.name,
            "total_seconds": 0,
        })
        item["total_seconds"] += entry.duration_seconds(now)
    for item in totals.values():
        item["total_hours"] = format_hours(item["total_seconds"])
    return sorted(totals.values(), key=lambda i: i["total_seconds"], reverse=True)


def strip_financials(payload: Any) -> Any:
    """Remove cost fields recursively for callers without financial access"""
    if isinstance(payload, dict):
        return {k: strip_financials(v) for k, v in payload.items() if k not in FINANCIAL_KEYS}
    if isinstance(payload, list):
        return [strip_financials(item) for item in payload]
    return payload


def build_time_report_pdf(report: Dict[str, Any], include_financials: bool = False) -> io.BytesIO:
    """Render a team_stats payload as a PDF"""
    return pdf_service.generate_team_report_pdf(report, include_financials=include_financials)
