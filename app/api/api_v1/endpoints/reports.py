from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.security import can_access_admin, can_view_financial_data
from ....db.database import get_db
from ....models.user import User
from ....services import report_service
from ....utils.timezone import parse_date, utc_now
from ...deps import get_current_user

router = APIRouter()


def _scope_user(current_user: User, user_id: Optional[int]) -> Optional[int]:
    """Non-admin callers only ever see their own time"""
    if can_access_admin(current_user.role):
        return user_id
    return current_user.id


def _visible(current_user: User, payload: Any) -> Any:
    if can_view_financial_data(current_user.role):
        return payload
    return report_service.strip_financials(payload)


@router.get("/today-stats")
async def get_today_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await report_service.today_stats(db, current_user.id, utc_now())


@router.get("/weekly-stats")
async def get_weekly_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await report_service.weekly_stats(db, current_user.id, utc_now())


@router.get("/time-series")
async def get_time_series(
    period: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    project_id: Optional[int] = Query(None),
    client_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    report = await report_service.time_series(
        db,
        period,
        utc_now(),
        user_id=_scope_user(current_user, user_id),
        project_id=project_id,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
    )
    return _visible(current_user, report)


async def _team_stats(db, current_user, period, user_id, project_id, client_id, start_date, end_date):
    return await report_service.team_stats(
        db,
        period,
        utc_now(),
        user_id=_scope_user(current_user, user_id),
        project_id=project_id,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/team-stats")
async def get_team_stats(
    period: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    project_id: Optional[int] = Query(None),
    client_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    report = await _team_stats(db, current_user, period, user_id, project_id, client_id, start_date, end_date)
    return _visible(current_user, report)


@router.get("/team-stats.pdf")
async def download_team_stats_pdf(
    period: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    project_id: Optional[int] = Query(None),
    client_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Team stats rendered as a PDF download"""
    report = await _team_stats(db, current_user, period, user_id, project_id, client_id, start_date, end_date)
    include_financials = can_view_financial_data(current_user.role)
    pdf = report_service.build_time_report_pdf(_visible(current_user, report), include_financials=include_financials)
    filename = f"time-report-{report['start_date']}-to-{report['end_date']}.pdf"
    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/daily-duration-totals")
async def get_daily_duration_totals(
    start_date: str = Query(...),
    end_date: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    now = utc_now()
    start, _ = report_service.resolve_period("custom", now, start_date, start_date)
    _, end = report_service.resolve_period("custom", now, end_date, end_date)
    return await report_service.daily_duration_totals(db, current_user.id, start, end, now=now)


@router.get("/task-daily-totals")
async def get_task_daily_totals(
    date: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await report_service.task_daily_totals(db, current_user.id, parse_date(date), now=utc_now())
