from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....schemas.client import ArchiveToggle
from ....schemas.project import Project as ProjectResponse, ProjectCreate, ProjectStats, ProjectUpdate
from ....schemas.task import Task as TaskResponse
from ....services import catalog_service, time_entry_service
from ...deps import get_current_user, require_admin_access

router = APIRouter()


@router.get("/")
async def list_projects(
    client_id: Optional[int] = Query(None),
    include_archived: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Projects with their client name"""
    return await catalog_service.list_projects(db, client_id=client_id, include_archived=include_archived)


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.create_project(db, project_in.name, project_in.client_id)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.get_project(db, project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    project_in: ProjectUpdate,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.update_project(
        db,
        project_id,
        name=project_in.name,
        client_id=project_in.client_id,
        archived=project_in.archived,
    )


@router.patch("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: int,
    toggle: ArchiveToggle,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.update_project(db, project_id, archived=toggle.archived)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> None:
    await catalog_service.delete_project(db, project_id)


@router.get("/{project_id}/stats", response_model=ProjectStats)
async def get_project_stats(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.get_project_stats(db, project_id)


@router.get("/{project_id}/tasks")
async def list_project_tasks(
    project_id: int,
    include_archived: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await catalog_service.get_project(db, project_id)
    return await catalog_service.list_tasks(db, project_id=project_id, include_archived=include_archived)


@router.get("/{project_id}/general-task", response_model=TaskResponse)
async def get_general_task(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """The project's system task, created on first request if missing"""
    return await catalog_service.get_general_task(db, project_id)


@router.get("/{project_id}/user-time")
async def get_project_user_time(
    project_id: int,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await catalog_service.get_project(db, project_id)
    return await time_entry_service.get_project_user_time(db, project_id)
