import pytest

from app.core.errors import ConflictError, NotFoundError
from app.models.notification import Notification
from app.models.time_entry import TimeEntry
from app.schemas.task import TaskCreate, TaskUpdate
from app.services import catalog_service, team_service

from conftest import make_user


@pytest.mark.asyncio
async def test_project_gets_general_task_for_active_users(db):
    ann = await make_user(db, "ann@example.com", "Ann")
    await make_user(db, "pending@example.com", "Pending", status="pending")
    client = await catalog_service.create_client(db, "  Acme  ")
    assert client.name == "Acme"

    project = await catalog_service.create_project(db, "Website", client.id)
    general = await catalog_service.get_general_task(db, project.id)
    assert general.is_system
    assert general.name == "Website"
    assert await catalog_service.get_task_assignee_ids(db, general.id) == [ann.id]

    again = await catalog_service.get_general_task(db, project.id)
    assert again.id == general.id


@pytest.mark.asyncio
async def test_time_tracking_project_uses_general_name(db):
    client = await catalog_service.create_client(db, "Internal")
    project = await catalog_service.create_project(db, "Time Tracking", client.id, is_system=True)
    general = await catalog_service.get_general_task(db, project.id)
    assert general.name == "General"


@pytest.mark.asyncio
async def test_new_user_receives_existing_general_tasks(db):
    client = await catalog_service.create_client(db, "Acme")
    await catalog_service.create_project(db, "Website", client.id)
    await catalog_service.create_project(db, "Mobile", client.id)

    bob = await make_user(db, "bob@example.com", "Bob")
    assert await catalog_service.assign_general_tasks_to_user(db, bob.id) == 2
    assert await catalog_service.assign_general_tasks_to_user(db, bob.id) == 0

    lists = await catalog_service.get_user_task_lists(db, bob.id)
    assert lists[0]["client_name"] == "Acme"
    assert sorted(p["project_name"] for p in lists[0]["projects"]) == ["Mobile", "Website"]


@pytest.mark.asyncio
async def test_archived_rows_are_hidden(db):
    client = await catalog_service.create_client(db, "Acme")
    other = await catalog_service.create_client(db, "Beta")
    await catalog_service.create_project(db, "Website", client.id)
    await catalog_service.update_client(db, other.id, archived=True)

    assert [c.name for c in await catalog_service.list_clients(db)] == ["Acme"]
    assert len(await catalog_service.list_clients(db, include_archived=True)) == 2

    await catalog_service.update_client(db, client.id, archived=True)
    assert await catalog_service.list_projects(db) == []
    assert len(await catalog_service.list_projects(db, include_archived=True)) == 1


@pytest.mark.asyncio
async def test_delete_guards(db):
    user = await make_user(db, "ann@example.com")
    client = await catalog_service.create_client(db, "Acme")
    project = await catalog_service.create_project(db, "Website", client.id)
    with pytest.raises(ConflictError):
        await catalog_service.delete_client(db, client.id)

    task = await catalog_service.create_task(db, TaskCreate(name="Design", project_id=project.id))
    db.add(TimeEntry(user_id=user.id, task_id=task.id, duration_manual=600))
    await db.commit()
    with pytest.raises(ConflictError):
        await catalog_service.delete_task(db, task.id)
    with pytest.raises(ConflictError):
        await catalog_service.delete_project(db, project.id)

    stats = await catalog_service.get_project_stats(db, project.id)
    assert stats["total_seconds"] == 600
    assert stats["task_count"] == 2


@pytest.mark.asyncio
async def test_delete_empty_project_then_client(db):
    client = await catalog_service.create_client(db, "Acme")
    project = await catalog_service.create_project(db, "Website", client.id)
    await catalog_service.delete_project(db, project.id)
    with pytest.raises(NotFoundError):
        await catalog_service.get_project(db, project.id)
    await catalog_service.delete_client(db, client.id)
    assert await catalog_service.list_clients(db, include_archived=True) == []


@pytest.mark.asyncio
async def test_task_assignment_notifies_users(db):
    admin = await make_user(db, "admin@example.com", "Admin", role="admin")
    client = await catalog_service.create_client(db, "Acme")
    project = await catalog_service.create_project(db, "Website", client.id)
    ann = await make_user(db, "ann@example.com", "Ann")

    task = await catalog_service.create_task(
        db, TaskCreate(name="Design", project_id=project.id, assigned_to=[ann.id]), created_by=admin
    )
    notifications = (await db.execute(Notification.__table__.select())).fetchall()
    assert len(notifications) == 1
    assert notifications[0].user_id == ann.id
    assert "Admin assigned you to Design" in notifications[0].message

    assert await catalog_service.assign_users(db, task.id, [ann.id, admin.id], assigned_by=admin) == [admin.id]
    with pytest.raises(NotFoundError):
        await catalog_service.assign_users(db, task.id, [999])

    await catalog_service.remove_assignment(db, task.id, ann.id)
    with pytest.raises(NotFoundError):
        await catalog_service.remove_assignment(db, task.id, ann.id)


@pytest.mark.asyncio
async def test_list_update_and_search_tasks(db):
    client = await catalog_service.create_client(db, "Acme")
    project = await catalog_service.create_project(db, "Website", client.id)
    task = await catalog_service.create_task(db, TaskCreate(name="Design header", project_id=project.id))

    updated = await catalog_service.update_task(db, task.id, TaskUpdate(status="completed", description="done"))
    assert updated.status == "completed"
    assert updated.description == "done"

    completed = await catalog_service.list_tasks(db, project_id=project.id, status="completed")
    assert [t["name"] for t in completed] == ["Design header"]
    assert completed[0]["client_name"] == "Acme"

    assert [t["name"] for t in await catalog_service.search_tasks(db, "header")] == ["Design header"]

    await catalog_service.update_task(db, task.id, TaskUpdate(archived=True))
    assert await catalog_service.search_tasks(db, "header") == []


@pytest.mark.asyncio
async def test_create_task_rejects_unknown_assignees(db):
    client = await catalog_service.create_client(db, "Acme")
    project = await catalog_service.create_project(db, "Website", client.id)

    with pytest.raises(NotFoundError, match="users not found"):
        await catalog_service.create_task(db, TaskCreate(name="Ghost", project_id=project.id, assigned_to=[424242]))
    assert [t["name"] for t in await catalog_service.list_tasks(db, project_id=project.id)] == ["Website"]


@pytest.mark.asyncio
async def test_primary_project_of_a_team_cannot_be_deleted(db):
    lead = await make_user(db, "lead@example.com", "Lena Lead", role="team_manager")
    client = await catalog_service.create_client(db, "Acme")
    project = await catalog_service.create_project(db, "Website", client.id)
    await team_service.create_team(db, lead, "Site Team", project_id=project.id)

    with pytest.raises(ConflictError, match="primary project"):
        await catalog_service.delete_project(db, project.id)
    assert (await catalog_service.get_project(db, project.id)).id == project.id
