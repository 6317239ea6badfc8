from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....schemas.team import Team as TeamResponse, TeamCreate, TeamMemberAdd, TeamMemberRoleUpdate, TeamProjectLink, TeamUpdate
from ....services import team_service
from ....core.security import can_view_financial_data
from ....services.report_service import resolve_period, strip_financials
from ....utils.timezone import utc_now
from ...deps import get_current_user

router = APIRouter()


@router.get("/")
async def list_my_teams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Teams the current user belongs to, with their role in each"""
    return await team_service.get_user_teams(db, current_user.id)


@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_in: TeamCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await team_service.create_team(
        db, current_user, team_in.name, description=team_in.description, project_id=team_in.project_id
    )


@router.get("/dashboards/mine")
async def get_my_team_dashboards(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await team_service.get_user_team_dashboards(db, current_user.id)


@router.get("/{team_id}")
async def get_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    team = await team_service.require_team_access(db, team_id, current_user)
    data = TeamResponse.model_validate(team).model_dump(mode="json")
    data["members"] = await team_service.list_members(db, team_id)
    data["projects"] = await team_service.list_team_projects(db, team_id)
    return data


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    team_in: TeamUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await team_service.update_team(db, team_id, current_user, team_in)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    await team_service.delete_team(db, team_id, current_user)


@router.get("/{team_id}/members")
async def list_team_members(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await team_service.require_team_access(db, team_id, current_user)
    return await team_service.list_members(db, team_id)


@router.post("/{team_id}/members", status_code=status.HTTP_201_CREATED)
async def add_team_member(
    team_id: int,
    member_in: TeamMemberAdd,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    member = await team_service.add_member(db, team_id, current_user, member_in.user_id, member_in.role)
    return {"team_id": member.team_id, "user_id": member.user_id, "role": member.role}


@router.patch("/{team_id}/members/{user_id}")
async def update_team_member_role(
    team_id: int,
    user_id: int,
    role_in: TeamMemberRoleUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    member = await team_service.update_member_role(db, team_id, current_user, user_id, role_in.role)
    return {"team_id": member.team_id, "user_id": member.user_id, "role": member.role}


@router.delete("/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_member(
    team_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    await team_service.remove_member(db, team_id, current_user, user_id)


@router.get("/{team_id}/projects")
async def list_team_projects(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await team_service.require_team_access(db, team_id, current_user)
    return await team_service.list_team_projects(db, team_id)


@router.post("/{team_id}/projects", status_code=status.HTTP_201_CREATED)
async def link_team_project(
    team_id: int,
    link: TeamProjectLink,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await team_service.link_project(db, team_id, current_user, link.project_id)
    return {"team_id": team_id, "project_id": link.project_id}


@router.delete("/{team_id}/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_team_project(
    team_id: int,
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> None:
    await team_service.unlink_project(db, team_id, current_user, project_id)


@router.get("/{team_id}/dashboard")
async def get_team_dashboard(
    team_id: int,
    period: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    now = utc_now()
    start = end = None
    if period or (start_date and end_date):
        start, end = resolve_period(period or "custom", now, start_date, end_date)
    dashboard = await team_service.get_team_dashboard(db, team_id, current_user, start=start, end=end, now=now)
    if dashboard is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team not found"
        )
    if not can_view_financial_data(current_user.role):
        return strip_financials(dashboard)
    return dashboard
