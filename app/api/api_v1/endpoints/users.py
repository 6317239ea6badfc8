from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.security import can_view_financial_data
from ....db.database import get_db
from ....models.user import User
from ....schemas.user import (
    PayRateUpdate,
    UserAdminResponse,
    UserInvite,
    UserResponse,
    UserRoleUpdate,
    UserStatusUpdate,
)
from ....services import user_service
from ...deps import require_admin_access, require_financial_access

router = APIRouter()


def _serialize(user: User, viewer: User) -> dict:
    """Pay rates are only shown to callers with financial access"""
    schema = UserAdminResponse if can_view_financial_data(viewer.role) else UserResponse
    return schema.model_validate(user).model_dump(mode="json")


@router.get("/")
async def list_users(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    users = await user_service.list_users(db, status=status_filter)
    return [_serialize(u, current_user) for u in users]


@router.get("/search")
async def search_users(
    q: str = Query(..., min_length=1),
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return [_serialize(u, current_user) for u in await user_service.search_users(db, q)]


@router.post("/invite", status_code=status.HTTP_201_CREATED)
async def invite_user(
    invite: UserInvite,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Create a pending user and email them an account setup link"""
    user = await user_service.invite_user(db, invite.email, invite.name, invite.role)
    return _serialize(user, current_user)


@router.post("/{user_id}/resend-invite")
async def resend_invite(
    user_id: int,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    user = await user_service.resend_invite(db, user_id)
    return _serialize(user, current_user)


@router.patch("/{user_id}/role")
async def update_user_role(
    user_id: int,
    role_update: UserRoleUpdate,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    user = await user_service.update_role(db, user_id, role_update.role)
    return _serialize(user, current_user)


@router.patch("/{user_id}/status")
async def update_user_status(
    user_id: int,
    status_update: UserStatusUpdate,
    current_user: User = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    user = await user_service.update_status(db, user_id, status_update.status)
    return _serialize(user, current_user)


@router.patch("/{user_id}/pay-rate")
async def update_user_pay_rate(
    user_id: int,
    pay_rate_update: PayRateUpdate,
    current_user: User = Depends(require_financial_access),
    db: AsyncSession = Depends(get_db)
) -> Any:
    user = await user_service.update_pay_rate(db, user_id, pay_rate_update.pay_rate)
    return UserAdminResponse.model_validate(user).model_dump(mode="json")
