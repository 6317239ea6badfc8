from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....schemas.task import Task as TaskResponse, TaskAssign, TaskCreate, TaskUpdate
from ....services import catalog_service
from ...deps import get_current_user, require_team_manager

router = APIRouter()


@router.get("/")
async def list_tasks(
    project_id: Optional[int] = Query(None),
    assigned_to: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    include_archived: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.list_tasks(
        db,
        project_id=project_id,
        assigned_to=assigned_to,
        status=status_filter,
        include_archived=include_archived,
    )


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Create a task and notify its assignees"""
    return await catalog_service.create_task(db, task_in, created_by=current_user)


@router.get("/search")
async def search_tasks(
    q: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.search_tasks(db, q)


@router.get("/mine")
async def get_my_tasks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Tasks assigned to the current user grouped by client and project"""
    return await catalog_service.get_user_task_lists(db, current_user.id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.get_task(db, task_id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.update_task(db, task_id, task_in)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db)
) -> None:
    await catalog_service.delete_task(db, task_id)


@router.post("/{task_id}/assignments")
async def assign_task(
    task_id: int,
    assignment: TaskAssign,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db)
) -> Any:
    added = await catalog_service.assign_users(db, task_id, assignment.user_ids, assigned_by=current_user)
    return {"task_id": task_id, "assigned": added}


@router.delete("/{task_id}/assignments/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_task_assignment(
    task_id: int,
    user_id: int,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db)
) -> None:
    await catalog_service.remove_assignment(db, task_id, user_id)
