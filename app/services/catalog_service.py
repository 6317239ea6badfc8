"""
Clients, projects and tasks, plus the per-project "General" system task
every active user can log time against.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, and_, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, NotFoundError
from ..models.client import Client
from ..models.project import Project, TIME_TRACKING_PROJECT_NAME
from ..models.task import Task, TaskAssignment, TaskStatus, TaskPriority
from ..models.team import Team
from ..models.time_entry import TimeEntry
from ..models.user import User, UserStatus
from ..models.notification import NotificationType
from ..utils.time_parser import format_hours
from . import email_service
from .notification_service import create_notification

logger = logging.getLogger(__name__)

GENERAL_TASK_NAME = "General"


# Clients

async def get_client(db: AsyncSession, client_id: int) -> Client:
    result = await db.execute(select(Client).where(Client.id == client_id))
    client = result.scalar_one_or_none()
    if client is None:
        raise NotFoundError("Client not found")
    return client


async def list_clients(db: AsyncSession, include_archived: bool = False) -> List[Client]:
    query = select(Client)
    if not include_archived:
        query = query.where(Client.archived == False)  # noqa: E712
    result = await db.execute(query.order_by(Client.name))
    return list(result.scalars().all())


async def create_client(db: AsyncSession, name: str, created_by: Optional[int] = None) -> Client:
    client = Client(name=name.strip(), created_by=created_by, archived=False)
    db.add(client)
    await db.commit()
    await db.refresh(client)
    logger.info(f"Created client {client.id} '{client.name}'")
    return client


async def update_client(db: AsyncSession, client_id: int, name: Optional[str] = None, archived: Optional[bool] = None) -> Client:
    client = await get_client(db, client_id)
    if name is not None:
        client.name = name.strip()
    if archived is not None:
        client.archived = archived
    await db.commit()
    await db.refresh(client)
    return client


async def delete_client(db: AsyncSession, client_id: int) -> None:
    client = await get_client(db, client_id)
    count = await db.execute(select(func.count(Project.id)).where(Project.client_id == client_id))
    if count.scalar():
        raise ConflictError("Cannot delete client with existing projects. Archive it instead.")
    await db.delete(client)
    await db.commit()
    logger.info(f"Deleted client {client_id}")


# Projects

async def get_project(db: AsyncSession, project_id: int) -> Project:
    result = await db.execute(select(Project).where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def list_projects(
    db: AsyncSession, client_id: Optional[int] = None, include_archived: bool = False
) -> List[Dict[str, Any]]:
    query = select(Project, Client.name).join(Client, Project.client_id == Client.id)
    if client_id:
        query = query.where(Project.client_id == client_id)
    if not include_archived:
        query = query.where(and_(Project.archived == False, Client.archived == False))  # noqa: E712
    result = await db.execute(query.order_by(Client.name, Project.name))
    return [
        {
            "id": project.id,
            "name": project.name,
            "client_id": project.client_id,
            "client_name": client_name,
            "archived": project.archived,
            "is_system": project.is_system,
            "created_at": project.created_at,
        }
        for project, client_name in result.all()
    ]


async def create_project(db: AsyncSession, name: str, client_id: int, is_system: bool = False) -> Project:
    await get_client(db, client_id)
    project = Project(name=name.strip(), client_id=client_id, archived=False, is_system=is_system)
    db.add(project)
    await db.flush()
    await ensure_general_task(db, project)
    await db.commit()
    await db.refresh(project)
    logger.info(f"Created project {project.id} '{project.name}' for client {client_id}")
    return project


async def update_project(
    db: AsyncSession,
    project_id: int,
    name: Optional[str] = None,
    client_id: Optional[int] = None,
    archived: Optional[bool] = None,
) -> Project:
    project = await get_project(db, project_id)
    if client_id is not None and client_id != project.client_id:
        await get_client(db, client_id)
        project.client_id = client_id
    if name is not None:
        project.name = name.strip()
    if archived is not None:
        project.archived = archived
    await db.commit()
    await db.refresh(project)
    return project


async def _project_entry_count(db: AsyncSession, project_id: int) -> int:
    result = await db.execute(
        select(func.count(TimeEntry.id))
        .join(Task, TimeEntry.task_id == Task.id)
        .where(Task.project_id == project_id)
    )
    return result.scalar() or 0


async def delete_project(db: AsyncSession, project_id: int) -> None:
    project = await get_project(db, project_id)
    if await _project_entry_count(db, project_id):
        raise ConflictError("Cannot delete project with existing time entries. Archive it instead.")
    teams = await db.execute(select(func.count(Team.id)).where(Team.project_id == project_id))
    if teams.scalar():
        raise ConflictError("Cannot delete a project that is a team's primary project. Archive it instead.")
    task_ids = select(Task.id).where(Task.project_id == project_id)
    await db.execute(delete(TaskAssignment).where(TaskAssignment.task_id.in_(task_ids)))
    await db.execute(delete(Task).where(Task.project_id == project_id))
    await db.delete(project)
    await db.commit()
    logger.info(f"Deleted project {project_id}")


async def get_project_stats(db: AsyncSession, project_id: int) -> Dict[str, Any]:
    await get_project(db, project_id)
    task_count = await db.execute(
        select(func.count(Task.id)).where(and_(Task.project_id == project_id, Task.archived == False))  # noqa: E712
    )
    entries = await db.execute(
        select(TimeEntry).join(Task, TimeEntry.task_id == Task.id).where(Task.project_id == project_id)
    )
    total_seconds = sum(e.duration_seconds() for e in entries.scalars().all())
    return {
        "project_id": project_id,
        "task_count": task_count.scalar() or 0,
        "total_seconds": total_seconds,
        "total_hours": format_hours(total_seconds),
    }


# General task

def general_task_name(project: Project) -> str:
    return GENERAL_TASK_NAME if project.name == TIME_TRACKING_PROJECT_NAME else project.name


async def _active_user_ids(db: AsyncSession) -> List[int]:
    result = await db.execute(select(User.id).where(User.status == UserStatus.ACTIVE.value))
    return [row[0] for row in result.all()]


async def _assign(db: AsyncSession, task_id: int, user_ids: Iterable[int]) -> List[int]:
    """Insert missing assignments; returns the user ids that were newly assigned"""
    existing = await db.execute(select(TaskAssignment.user_id).where(TaskAssignment.task_id == task_id))
    have = {row[0] for row in existing.all()}
    added = []
    for user_id in user_ids:
        if user_id in have or user_id in added:
            continue
        db.add(TaskAssignment(task_id=task_id, user_id=user_id))
        added.append(user_id)
    await db.flush()
    return added


async def ensure_general_task(db: AsyncSession, project: Project) -> Task:
    """Return the project's system task, creating it and assigning every active user"""
    result = await db.execute(
        select(Task).where(and_(Task.project_id == project.id, Task.is_system == True))  # noqa: E712
    )
    task = result.scalars().first()
    if task is None:
        task = Task(
            project_id=project.id,
            name=general_task_name(project),
            description=f"General time tracking for {project.name}",
            status=TaskStatus.PENDING.value,
            priority=TaskPriority.REGULAR.value,
            is_system=True,
            archived=False,
        )
        db.add(task)
        await db.flush()
        added = await _assign(db, task.id, await _active_user_ids(db))
        logger.info(f"Created general task {task.id} for project {project.id}, assigned {len(added)} users")
    return task


async def get_general_task(db: AsyncSession, project_id: int) -> Task:
    project = await get_project(db, project_id)
    task = await ensure_general_task(db, project)
    await db.commit()
    return task


async def assign_general_tasks_to_user(db: AsyncSession, user_id: int) -> int:
    """Give a user every system task they do not hold yet; returns how many were added"""
    result = await db.execute(
        select(Task.id)
        .join(Project, Task.project_id == Project.id)
        .where(and_(Task.is_system == True, Task.archived == False, Project.archived == False))  # noqa: E712
    )
    added = 0
    for (task_id,) in result.all():
        added += len(await _assign(db, task_id, [user_id]))
    await db.commit()
    if added:
        logger.info(f"Assigned {added} general tasks to user {user_id}")
    return added


# Tasks

async def get_task(db: AsyncSession, task_id: int) -> Task:
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def get_task_assignee_ids(db: AsyncSession, task_id: int) -> List[int]:
    result = await db.execute(select(TaskAssignment.user_id).where(TaskAssignment.task_id == task_id))
    return [row[0] for row in result.all()]


def _task_dict(task: Task, project_name: str, client_name: str, assignees: List[int]) -> Dict[str, Any]:
    return {
        "id": task.id,
        "name": task.name,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "due_date": task.due_date,
        "archived": task.archived,
        "is_system": task.is_system,
        "project_id": task.project_id,
        "project_name": project_name,
        "client_name": client_name,
        "assigned_to": assignees,
        "created_at": task.created_at,
    }


async def list_tasks(
    db: AsyncSession,
    project_id: Optional[int] = None,
    assigned_to: Optional[int] = None,
    status: Optional[str] = None,
    include_archived: bool = False,
) -> List[Dict[str, Any]]:
    query = (
        select(Task, Project.name, Client.name)
        .join(Project, Task.project_id == Project.id)
        .join(Client, Project.client_id == Client.id)
    )
    if project_id:
        query = query.where(Task.project_id == project_id)
    if assigned_to:
        query = query.join(TaskAssignment, TaskAssignment.task_id == Task.id).where(TaskAssignment.user_id == assigned_to)
    if status:
        query = query.where(Task.status == status)
    if not include_archived:
        query = query.where(and_(
            Task.archived == False, Project.archived == False, Client.archived == False  # noqa: E712
        ))
    result = await db.execute(query.order_by(Client.name, Project.name, Task.name))
    rows = result.all()

    assignments = await db.execute(
        select(TaskAssignment.task_id, TaskAssignment.user_id).where(
            TaskAssignment.task_id.in_([task.id for task, _, _ in rows] or [0])
        )
    )
    by_task: Dict[int, List[int]] = {}
    for task_id, user_id in assignments.all():
        by_task.setdefault(task_id, []).append(user_id)
    return [_task_dict(task, p, c, by_task.get(task.id, [])) for task, p, c in rows]


async def search_tasks(db: AsyncSession, term: str, limit: int = 20) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Task, Project.name, Client.name)
        .join(Project, Task.project_id == Project.id)
        .join(Client, Project.client_id == Client.id)
        .where(and_(Task.name.ilike(f"%{term}%"), Task.archived == False))  # noqa: E712
        .order_by(Task.name)
        .limit(limit)
    )
    return [_task_dict(task, p, c, []) for task, p, c in result.all()]


async def _notify_assignees(db: AsyncSession, task: Task, user_ids: List[int], assigned_by: Optional[User]) -> None:
    if not user_ids:
        return
    project = await get_project(db, task.project_id)
    by_name = assigned_by.name if assigned_by else "An administrator"
    users = await db.execute(select(User).where(User.id.in_(user_ids)))
    for user in users.scalars().all():
        await create_notification(
            db,
            user_id=user.id,
            type=NotificationType.TASK_ASSIGNED,
            title="New task assigned",
            message=f"{by_name} assigned you to {task.name} in {project.name}",
            related_id=task.id,
            related_type="task",
            commit=False,
        )
        email_service.send_task_assigned_email(user.email, user.name, task.name, project.name, by_name)


async def _require_users(db: AsyncSession, user_ids: List[int]) -> None:
    if not user_ids:
        return
    found = await db.execute(select(User.id).where(User.id.in_(user_ids)))
    if len(found.all()) != len(set(user_ids)):
        raise NotFoundError("One or more users not found")


async def create_task(db: AsyncSession, data, created_by: Optional[User] = None) -> Task:
    await get_project(db, data.project_id)
    await _require_users(db, data.assigned_to or [])
    task = Task(
        project_id=data.project_id,
        name=data.name.strip(),
        description=data.description,
        status=getattr(data.status, "value", data.status) or TaskStatus.PENDING.value,
        priority=getattr(data.priority, "value", data.priority) or TaskPriority.REGULAR.value,
        due_date=data.due_date,
        archived=False,
        is_system=False,
    )
    db.add(task)
    await db.flush()
    added = await _assign(db, task.id, data.assigned_to or [])
    await _notify_assignees(db, task, added, created_by)
    await db.commit()
    await db.refresh(task)
    logger.info(f"Created task {task.id} '{task.name}' in project {task.project_id}")
    return task


async def update_task(db: AsyncSession, task_id: int, data) -> Task:
    task = await get_task(db, task_id)
    updates = data.model_dump(exclude_unset=True)
    if "project_id" in updates and updates["project_id"] is not None:
        await get_project(db, updates["project_id"])
    for field, value in updates.items():
        if value is None and field in ("name", "status", "priority", "archived", "project_id"):
            continue
        setattr(task, field, getattr(value, "value", value))
    await db.commit()
    await db.refresh(task)
    return task


async def delete_task(db: AsyncSession, task_id: int) -> None:
    task = await get_task(db, task_id)
    count = await db.execute(select(func.count(TimeEntry.id)).where(TimeEntry.task_id == task_id))
    if count.scalar():
        raise ConflictError("Cannot delete task with existing time entries. Archive it instead.")
    await db.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task_id))
    await db.delete(task)
    await db.commit()
    logger.info(f"Deleted task {task_id}")


async def assign_users(db: AsyncSession, task_id: int, user_ids: List[int], assigned_by: Optional[User] = None) -> List[int]:
    task = await get_task(db, task_id)
    await _require_users(db, user_ids)
    added = await _assign(db, task.id, user_ids)
    await _notify_assignees(db, task, added, assigned_by)
    await db.commit()
    return added


async def remove_assignment(db: AsyncSession, task_id: int, user_id: int) -> None:
    result = await db.execute(
        delete(TaskAssignment).where(and_(TaskAssignment.task_id == task_id, TaskAssignment.user_id == user_id))
    )
    if not result.rowcount:
        raise NotFoundError("Assignment not found")
    await db.commit()


async def get_user_task_lists(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """Tasks assigned to the user grouped client -> project"""
    tasks = await list_tasks(db, assigned_to=user_id)
    clients: Dict[str, Dict[str, Any]] = {}
    for task in tasks:
        client = clients.setdefault(task["client_name"], {"client_name": task["client_name"], "projects": {}})
        project = client["projects"].setdefault(task["project_id"], {
            "project_id": task["project_id"],
            "project_name": task["project_name"],
            "tasks": [],
        })
        project["tasks"].append(task)
    return [
        {"client_name": c["client_name"], "projects": list(c["projects"].values())}
        for c in clients.values()
    ]
