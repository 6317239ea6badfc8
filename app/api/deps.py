from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.security import can_access_admin, can_manage_teams, can_view_financial_data, has_permission
from ..db.database import get_db
from ..models.user import User
from ..services.auth_service import get_session_user
from ..services.cdn_service import BunnyCdnStorage, get_cdn_storage

security = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Bearer token if present, otherwise the session cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    user = await get_session_user(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin_access(current_user: User = Depends(get_current_user)) -> User:
    """Require admin or developer role"""
    if not can_access_admin(current_user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def require_financial_access(current_user: User = Depends(get_current_user)) -> User:
    """Require admin role (pay rates and costs)"""
    if not can_view_financial_data(current_user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Financial access required"
        )
    return current_user


def require_team_manager(current_user: User = Depends(get_current_user)) -> User:
    """Require team manager role or above"""
    if not can_manage_teams(current_user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user


def require_role(role: str):
    """Dependency factory for a minimum role level"""
    def check_role(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user.role, role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions"
            )
        return current_user
    return check_role


def get_storage() -> Optional[BunnyCdnStorage]:
    return get_cdn_storage()
