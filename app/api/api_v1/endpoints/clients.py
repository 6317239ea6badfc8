from typing import Any, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....db.database import get_db
from ....models.user import User
from ....schemas.client import ArchiveToggle, Client as ClientResponse, ClientCreate, ClientUpdate
from ....services import catalog_service
from ...deps import get_current_user, require_admin_access

router = APIRouter()


@router.get("/", response_model=List[ClientResponse])
async def list_clients(
    include_archived: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.list_clients(db, include_archived=include_archived)


@router.post("/", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_in: ClientCreate,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.create_client(db, client_in.name, created_by=current_user.id)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.get_client(db, client_id)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    client_in: ClientUpdate,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.update_client(db, client_id, name=client_in.name, archived=client_in.archived)


@router.patch("/{client_id}/archive", response_model=ClientResponse)
async def archive_client(
    client_id: int,
    toggle: ArchiveToggle,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await catalog_service.update_client(db, client_id, archived=toggle.archived)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> None:
    await catalog_service.delete_client(db, client_id)
