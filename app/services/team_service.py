"""Teams, membership, project links and team dashboards"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from ..core.security import can_access_admin, can_create_teams
from ..models.client import Client
from ..models.notification import NotificationType
from ..models.project import Project
from ..models.task import Task
from ..models.team import ProjectTeam, Team, TeamMember, TeamRole
from ..models.time_entry import TimeEntry
from ..models.user import User
from ..utils.time_parser import format_hours
from ..utils.timezone import ensure_utc, to_user_iso_string
from .notification_service import create_notification

logger = logging.getLogger(__name__)

MAX_TEAM_NAME_LENGTH = 255
RECENT_ACTIVITY_LIMIT = 10


async def get_team(db: AsyncSession, team_id: int) -> Team:
    team = await db.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return team


async def get_membership(db: AsyncSession, team_id: int, user_id: int) -> Optional[TeamMember]:
    result = await db.execute(
        select(TeamMember).where(and_(TeamMember.team_id == team_id, TeamMember.user_id == user_id))
    )
    return result.scalar_one_or_none()


async def can_access_team(db: AsyncSession, team_id: int, user: User) -> bool:
    if can_access_admin(user.role):
        return True
    return await get_membership(db, team_id, user.id) is not None


async def require_team_access(db: AsyncSession, team_id: int, user: User) -> Team:
    team = await get_team(db, team_id)
    if not await can_access_team(db, team_id, user):
        raise PermissionDeniedError("You are not a member of this team")
    return team


async def require_team_lead(db: AsyncSession, team_id: int, user: User) -> Team:
    team = await get_team(db, team_id)
    if can_access_admin(user.role):
        return team
    membership = await get_membership(db, team_id, user.id)
    if membership is None or membership.role != TeamRole.LEAD.value:
        raise PermissionDeniedError("Only team leads can manage this team")
    return team


async def get_user_teams(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Team, TeamMember.role, TeamMember.joined_at)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(and_(TeamMember.user_id == user_id, Team.archived == False))  # noqa: E712
        .order_by(Team.name)
    )
    teams = []
    for team, role, joined_at in result.all():
        count = await db.execute(select(func.count(TeamMember.id)).where(TeamMember.team_id == team.id))
        teams.append({
            "id": team.id,
            "name": team.name,
            "description": team.description,
            "project_id": team.project_id,
            "user_role": role,
            "joined_at": to_user_iso_string(joined_at),
            "member_count": count.scalar() or 0,
            "created_at": to_user_iso_string(team.created_at),
        })
    return teams


async def create_team(
    db: AsyncSession, user: User, name: str, description: Optional[str] = None, project_id: Optional[int] = None
) -> Team:
    if not can_create_teams(user.role):
        raise PermissionDeniedError("Insufficient permissions to create teams")
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Team name is required")
    if len(name) > MAX_TEAM_NAME_LENGTH:
        raise InvalidInputError("Team name must be 255 characters or less")
    if project_id is not None and await db.get(Project, project_id) is None:
        raise NotFoundError("Project not found")

    team = Team(name=name, description=description, created_by=user.id, project_id=project_id, archived=False)
    db.add(team)
    await db.flush()
    db.add(TeamMember(team_id=team.id, user_id=user.id, role=TeamRole.LEAD.value))
    if project_id is not None:
        db.add(ProjectTeam(project_id=project_id, team_id=team.id))
    await db.commit()
    await db.refresh(team)
    logger.info(f"User {user.id} created team {team.id} '{team.name}'")
    return team


async def update_team(db: AsyncSession, team_id: int, user: User, data) -> Team:
    team = await require_team_lead(db, team_id, user)
    updates = data.model_dump(exclude_unset=True)
    if updates.get("name") is not None:
        team.name = updates["name"].strip()
    if "description" in updates:
        team.description = updates["description"]
    if updates.get("archived") is not None:
        team.archived = updates["archived"]
    await db.commit()
    await db.refresh(team)
    return team


async def delete_team(db: AsyncSession, team_id: int, user: User) -> None:
    team = await require_team_lead(db, team_id, user)
    await db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
    await db.execute(delete(ProjectTeam).where(ProjectTeam.team_id == team_id))
    await db.delete(team)
    await db.commit()
    logger.info(f"Deleted team {team_id}")


async def list_members(db: AsyncSession, team_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(TeamMember, User)
        .join(User, TeamMember.user_id == User.id)
        .where(TeamMember.team_id == team_id)
        .order_by(User.name)
    )
    return [
        {
            "user_id": user.id,
            "name": user.name,
            "email": user.email,
            "role": member.role,
            "joined_at": to_user_iso_string(member.joined_at),
        }
        for member, user in result.all()
    ]


async def add_member(db: AsyncSession, team_id: int, actor: User, user_id: int, role: str = TeamRole.MEMBER.value) -> TeamMember:
    team = await require_team_lead(db, team_id, actor)
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if await get_membership(db, team_id, user_id) is not None:
        raise ConflictError("User is already a member of this team")
    member = TeamMember(team_id=team_id, user_id=user_id, role=getattr(role, "value", role))
    db.add(member)
    await create_notification(
        db,
        user_id=user_id,
        type=NotificationType.TEAM_INVITE,
        title="Added to team",
        message=f"{actor.name} added you to {team.name}",
        related_id=team_id,
        related_type="team",
        commit=False,
    )
    await db.commit()
    await db.refresh(member)
    return member


async def update_member_role(db: AsyncSession, team_id: int, actor: User, user_id: int, role: str) -> TeamMember:
    await require_team_lead(db, team_id, actor)
    member = await get_membership(db, team_id, user_id)
    if member is None:
        raise NotFoundError("Team member not found")
    member.role = getattr(role, "value", role)
    await db.commit()
    await db.refresh(member)
    return member


async def remove_member(db: AsyncSession, team_id: int, actor: User, user_id: int) -> None:
    if actor.id != user_id:
        await require_team_lead(db, team_id, actor)
    member = await get_membership(db, team_id, user_id)
    if member is None:
        raise NotFoundError("Team member not found")
    await db.delete(member)
    await db.commit()


async def list_team_projects(db: AsyncSession, team_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Project, Client.name)
        .join(ProjectTeam, ProjectTeam.project_id == Project.id)
        .join(Client, Project.client_id == Client.id)
        .where(and_(ProjectTeam.team_id == team_id, Project.archived == False))  # noqa: E712
        .order_by(Project.name)
    )
    return [
        {"project_id": p.id, "project_name": p.name, "client_id": p.client_id, "client_name": c}
        for p, c in result.all()
    ]


async def link_project(db: AsyncSession, team_id: int, actor: User, project_id: int) -> None:
    await require_team_lead(db, team_id, actor)
    if await db.get(Project, project_id) is None:
        raise NotFoundError("Project not found")
    existing = await db.get(ProjectTeam, (project_id, team_id))
    if existing is not None:
        raise ConflictError("Project is already linked to this team")
    db.add(ProjectTeam(project_id=project_id, team_id=team_id))
    await db.commit()


async def unlink_project(db: AsyncSession, team_id: int, actor: User, project_id: int) -> None:
    await require_team_lead(db, team_id, actor)
    result = await db.execute(
        delete(ProjectTeam).where(and_(ProjectTeam.team_id == team_id, ProjectTeam.project_id == project_id))
    )
    if not result.rowcount:
        raise NotFoundError("Project is not linked to this team")
    await db.commit()


async def team_covers_project(db: AsyncSession, team: Team, project_id: int) -> bool:
    """Linked through project_teams or as the team's primary project"""
    if team.project_id == project_id:
        return True
    return await db.get(ProjectTeam, (project_id, team.id)) is not None


async def user_has_team_access_to_project(db: AsyncSession, user_id: int, project_id: int) -> bool:
    result = await db.execute(
        select(ProjectTeam.team_id)
        .join(TeamMember, TeamMember.team_id == ProjectTeam.team_id)
        .where(and_(ProjectTeam.project_id == project_id, TeamMember.user_id == user_id))
        .limit(1)
    )
    return result.first() is not None


async def user_is_team_lead_for_project(db: AsyncSession, user_id: int, project_id: int) -> bool:
    result = await db.execute(
        select(ProjectTeam.team_id)
        .join(TeamMember, TeamMember.team_id == ProjectTeam.team_id)
        .where(and_(
            ProjectTeam.project_id == project_id,
            TeamMember.user_id == user_id,
            TeamMember.role == TeamRole.LEAD.value,
        ))
        .limit(1)
    )
    return result.first() is not None


async def get_user_team_projects(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Project, Client.name, Team.id, Team.name, TeamMember.role)
        .join(ProjectTeam, ProjectTeam.project_id == Project.id)
        .join(Team, Team.id == ProjectTeam.team_id)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .join(Client, Project.client_id == Client.id)
        .where(and_(TeamMember.user_id == user_id, Project.archived == False, Team.archived == False))  # noqa: E712
    )
    return [
        {
            "project_id": p.id,
            "project_name": p.name,
            "client_name": client_name,
            "team_id": team_id,
            "team_name": team_name,
            "user_role": role,
        }
        for p, client_name, team_id, team_name, role in result.all()
    ]


async def get_user_team_dashboards(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    teams = await get_user_teams(db, user_id)
    projects = await get_user_team_projects(db, user_id)
    for team in teams:
        team["projects"] = [
            {"project_id": p["project_id"], "project_name": p["project_name"], "client_name": p["client_name"]}
            for p in projects if p["team_id"] == team["id"]
        ]
    return teams


async def get_team_dashboard(
    db: AsyncSession,
    team_id: int,
    user: User,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """Per-project hours and cost for a team's members; None when the user cannot see the team"""
    team = await db.get(Team, team_id)
    if team is None or not await can_access_team(db, team_id, user):
        return None

    members = await list_members(db, team_id)
    member_ids = [m["user_id"] for m in members]
    projects = await list_team_projects(db, team_id)
    if team.project_id and team.project_id not in {p["project_id"] for p in projects}:
        linked = await db.execute(
            select(Project, Client.name).join(Client, Project.client_id == Client.id).where(Project.id == team.project_id)
        )
        row = linked.first()
        if row is not None:
            projects.append({"project_id": row[0].id, "project_name": row[0].name,
                             "client_id": row[0].client_id, "client_name": row[1]})

    project_stats = []
    active_members = set()
    for project in projects:
        result = await db.execute(
            select(TimeEntry, User, Task.name)
            .join(Task, TimeEntry.task_id == Task.id)
            .join(User, TimeEntry.user_id == User.id)
            .where(and_(Task.project_id == project["project_id"], TimeEntry.user_id.in_(member_ids or [0])))
        )
        seconds, cost, contributors, activity = 0, 0.0, set(), []
        for entry, entry_user, task_name in result.all():
            anchor = ensure_utc(entry.start_time or entry.created_at)
            if (start and anchor < start) or (end and anchor > end):
                continue
            entry_seconds = entry.duration_seconds(now)
            seconds += entry_seconds
            cost += entry_seconds / 3600 * entry_user.pay_rate_value
            contributors.add(entry_user.id)
            activity.append((anchor, {
                "entry_id": entry.id,
                "user_name": entry_user.name,
                "task_name": task_name,
                "duration": entry_seconds,
                "date": to_user_iso_string(anchor),
            }))
        active_members.update(contributors)
        activity.sort(key=lambda a: a[0], reverse=True)
        project_stats.append({
            **project,
            "total_seconds": seconds,
            "total_hours": format_hours(seconds),
            "total_cost": round(cost, 2),
            "member_count": len(contributors),
            "recent_activity": [a for _, a in activity[:RECENT_ACTIVITY_LIMIT]],
        })

    total_seconds = sum(p["total_seconds"] for p in project_stats)
    return {
        "team": {"id": team.id, "name": team.name, "description": team.description},
        "members": members,
        "projects": project_stats,
        "totals": {
            "total_seconds": total_seconds,
            "total_hours": format_hours(total_seconds),
            "total_cost": round(sum(p["total_cost"] for p in project_stats), 2),
            "active_members": len(active_members),
            "active_projects": sum(1 for p in project_stats if p["total_seconds"] > 0),
        },
    }
