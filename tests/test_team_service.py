from datetime import datetime, timezone

import pytest

from app.core.errors import ConflictError, InvalidInputError, NotFoundError, PermissionDeniedError
from app.models.notification import Notification
from app.models.time_entry import TimeEntry
from app.models.project import Project
from app.schemas.team import TeamUpdate
from app.services import team_service

from conftest import make_task, make_user


async def _team_with_members(db):
    lead = await make_user(db, "lead@example.com", "Lena Lead", role="team_manager", pay_rate=80)
    member = await make_user(db, "mo@example.com", "Mo Member", pay_rate=40)
    team = await team_service.create_team(db, lead, "Core Team", "Builds things")
    await team_service.add_member(db, team.id, lead, member.id)
    return team, lead, member


@pytest.mark.asyncio
async def test_create_team_makes_creator_lead(db):
    team, lead, member = await _team_with_members(db)
    members = await team_service.list_members(db, team.id)
    assert {(m["name"], m["role"]) for m in members} == {("Lena Lead", "lead"), ("Mo Member", "member")}

    teams = await team_service.get_user_teams(db, member.id)
    assert teams[0]["name"] == "Core Team"
    assert teams[0]["member_count"] == 2
    assert teams[0]["user_role"] == "member"

    notes = (await db.execute(Notification.__table__.select())).fetchall()
    assert [(n.user_id, n.type) for n in notes] == [(member.id, "team_invite")]


@pytest.mark.asyncio
async def test_create_team_validation(db):
    user = await make_user(db, "u@example.com", role="user")
    manager = await make_user(db, "m@example.com", role="team_manager")
    with pytest.raises(PermissionDeniedError):
        await team_service.create_team(db, user, "Nope")
    with pytest.raises(InvalidInputError):
        await team_service.create_team(db, manager, "   ")
    with pytest.raises(InvalidInputError):
        await team_service.create_team(db, manager, "x" * 256)
    with pytest.raises(NotFoundError):
        await team_service.create_team(db, manager, "Linked", project_id=999)


@pytest.mark.asyncio
async def test_only_leads_manage(db):
    team, lead, member = await _team_with_members(db)
    outsider = await make_user(db, "out@example.com", "Out")

    with pytest.raises(PermissionDeniedError):
        await team_service.update_team(db, team.id, member, TeamUpdate(name="Renamed"))
    with pytest.raises(PermissionDeniedError):
        await team_service.add_member(db, team.id, member, outsider.id)
    with pytest.raises(ConflictError):
        await team_service.add_member(db, team.id, lead, member.id)

    renamed = await team_service.update_team(db, team.id, lead, TeamUpdate(name="Renamed"))
    assert renamed.name == "Renamed"

    await team_service.update_member_role(db, team.id, lead, member.id, "lead")
    await team_service.add_member(db, team.id, member, outsider.id)

    # members may always leave
    await team_service.remove_member(db, team.id, outsider, outsider.id)
    assert await team_service.get_membership(db, team.id, outsider.id) is None


@pytest.mark.asyncio
async def test_access_checks(db):
    team, lead, member = await _team_with_members(db)
    outsider = await make_user(db, "out@example.com", "Out")
    admin = await make_user(db, "admin@example.com", "Admin", role="admin")

    assert await team_service.can_access_team(db, team.id, member)
    assert await team_service.can_access_team(db, team.id, admin)
    assert not await team_service.can_access_team(db, team.id, outsider)
    with pytest.raises(PermissionDeniedError):
        await team_service.require_team_access(db, team.id, outsider)
    with pytest.raises(NotFoundError):
        await team_service.require_team_access(db, 999, admin)


@pytest.mark.asyncio
async def test_project_links(db):
    team, lead, member = await _team_with_members(db)
    task = await make_task(db)

    await team_service.link_project(db, team.id, lead, task.project_id)
    with pytest.raises(ConflictError):
        await team_service.link_project(db, team.id, lead, task.project_id)

    assert [p["project_name"] for p in await team_service.list_team_projects(db, team.id)] == ["Website"]
    assert await team_service.user_has_team_access_to_project(db, member.id, task.project_id)
    assert await team_service.user_is_team_lead_for_project(db, lead.id, task.project_id)
    assert not await team_service.user_is_team_lead_for_project(db, member.id, task.project_id)

    dashboards = await team_service.get_user_team_dashboards(db, member.id)
    assert dashboards[0]["projects"][0]["project_name"] == "Website"

    await team_service.unlink_project(db, team.id, lead, task.project_id)
    with pytest.raises(NotFoundError):
        await team_service.unlink_project(db, team.id, lead, task.project_id)


@pytest.mark.asyncio
async def test_dashboard_totals_and_recent_activity(db):
    team, lead, member = await _team_with_members(db)
    outsider = await make_user(db, "out@example.com", "Out")
    task = await make_task(db)
    await team_service.link_project(db, team.id, lead, task.project_id)

    for day in range(1, 13):
        db.add(TimeEntry(
            user_id=member.id, task_id=task.id, duration_manual=1800,
            start_time=datetime(2026, 2, day, 9, tzinfo=timezone.utc),
            end_time=datetime(2026, 2, day, 9, 30, tzinfo=timezone.utc),
        ))
    db.add(TimeEntry(user_id=lead.id, task_id=task.id, duration_manual=3600,
                     start_time=datetime(2026, 2, 20, 9, tzinfo=timezone.utc),
                     end_time=datetime(2026, 2, 20, 10, tzinfo=timezone.utc)))
    db.add(TimeEntry(user_id=outsider.id, task_id=task.id, duration_manual=3600,
                     start_time=datetime(2026, 2, 20, 9, tzinfo=timezone.utc),
                     end_time=datetime(2026, 2, 20, 10, tzinfo=timezone.utc)))
    await db.commit()

    dashboard = await team_service.get_team_dashboard(db, team.id, member)
    project = dashboard["projects"][0]
    assert project["total_seconds"] == 12 * 1800 + 3600
    assert project["total_cost"] == round(6 * 40 + 80, 2)
    assert project["member_count"] == 2
    assert len(project["recent_activity"]) == 10
    assert project["recent_activity"][0]["user_name"] == "Lena Lead"
    assert dashboard["totals"]["active_members"] == 2
    assert dashboard["totals"]["active_projects"] == 1

    ranged = await team_service.get_team_dashboard(
        db, team.id, member,
        start=datetime(2026, 2, 10, tzinfo=timezone.utc), end=datetime(2026, 2, 12, 23, 59, tzinfo=timezone.utc),
    )
    assert ranged["projects"][0]["total_seconds"] == 3 * 1800

    assert await team_service.get_team_dashboard(db, team.id, outsider) is None
    assert await team_service.get_team_dashboard(db, 999, member) is None


@pytest.mark.asyncio
async def test_dashboard_includes_primary_project(db):
    lead = await make_user(db, "lead@example.com", "Lena Lead", role="team_manager")
    task = await make_task(db)
    project = await db.get(Project, task.project_id)
    team = await team_service.create_team(db, lead, "Site Team", project_id=project.id)
    await team_service.unlink_project(db, team.id, lead, project.id)

    dashboard = await team_service.get_team_dashboard(db, team.id, lead)
    assert [p["project_id"] for p in dashboard["projects"]] == [project.id]


@pytest.mark.asyncio
async def test_delete_team(db):
    team, lead, member = await _team_with_members(db)
    with pytest.raises(PermissionDeniedError):
        await team_service.delete_team(db, team.id, member)
    await team_service.delete_team(db, team.id, lead)
    with pytest.raises(NotFoundError):
        await team_service.get_team(db, team.id)
