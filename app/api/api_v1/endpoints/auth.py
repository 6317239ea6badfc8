from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import settings
from ....core.rate_limit import limiter
from ....db.database import get_db
from ....models.user import User
from ....schemas.auth import LoginRequest, PasswordReset, PasswordResetRequest, ProfileUpdate, SetupAccount
from ....schemas.user import UserResponse
from ....services import auth_service, user_service
from ....utils.timezone import to_user_iso_string
from ...deps import get_current_user, get_session_token

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=not settings.DEBUG and settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 3600,
        path="/",
    )


@router.post("/login")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Login with email and password; sets the session cookie and returns the token"""
    if not login_data.email or not login_data.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required"
        )
    try:
        user, session = await auth_service.login(db, login_data.email, login_data.password)
    except auth_service.AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    _set_session_cookie(response, session.token)
    return {
        "token": session.token,
        "expires_at": to_user_iso_string(session.expires_at),
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
    }


@router.post("/logout")
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await auth_service.logout(db, token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)) -> Any:
    return current_user


@router.post("/request-password-reset")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def request_password_reset(
    request: Request,
    reset_request: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    await auth_service.request_password_reset(db, reset_request.email)
    # Same answer whether or not the account exists
    return {"message": "If an account exists for this email, a reset link has been sent"}


@router.post("/reset-password")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def reset_password(
    request: Request,
    reset_data: PasswordReset,
    db: AsyncSession = Depends(get_db)
) -> Any:
    await auth_service.reset_password(db, reset_data.token, reset_data.password)
    return {"message": "Password has been reset"}


@router.get("/validate-invitation")
async def validate_invitation(token: str, db: AsyncSession = Depends(get_db)) -> Any:
    invitation = await auth_service.validate_invitation(db, token)
    return {"valid": True, "email": invitation.email}


@router.post("/setup-account")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def setup_account(
    request: Request,
    response: Response,
    setup_data: SetupAccount,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Accept an invitation and sign the new user in"""
    user = await auth_service.setup_account(db, setup_data.token, setup_data.password, setup_data.name)
    session = await auth_service.create_session(db, user.id)
    _set_session_cookie(response, session.token)
    return {
        "token": session.token,
        "expires_at": to_user_iso_string(session.expires_at),
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
    }


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await user_service.update_profile(
        db,
        current_user,
        name=profile.name,
        current_password=profile.current_password,
        new_password=profile.new_password,
    )
