"""Session login/logout, password resets and invitation acceptance"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import select, and_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import InvalidInputError
from ..core.security import generate_token, get_password_hash, is_token_expired, verify_password
from ..models.auth import InvitationToken, PasswordResetToken, UserSession
from ..models.user import User, UserStatus
from ..utils.timezone import utc_now
from . import email_service

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """401"""


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def create_session(db: AsyncSession, user_id: int, now: Optional[datetime] = None) -> UserSession:
    now = now or utc_now()
    session = UserSession(
        user_id=user_id,
        token=generate_token(),
        expires_at=now + timedelta(days=settings.SESSION_EXPIRE_DAYS),
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return session


async def login(db: AsyncSession, email: str, password: str) -> Tuple[User, UserSession]:
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        logger.info(f"Failed login for {email}")
        raise AuthenticationError("Invalid email or password")
    if user.status != UserStatus.ACTIVE.value:
        raise AuthenticationError("Account is not active")
    session = await create_session(db, user.id)
    logger.info(f"User {user.id} logged in")
    return user, session


async def get_session_user(db: AsyncSession, token: Optional[str], now: Optional[datetime] = None) -> Optional[User]:
    """Resolve a session token to an active user; expired sessions are removed"""
    if not token:
        return None
    result = await db.execute(
        select(UserSession, User).join(User, UserSession.user_id == User.id).where(UserSession.token == token)
    )
    row = result.first()
    if row is None:
        return None
    session, user = row
    if is_token_expired(session.expires_at, now):
        await db.delete(session)
        await db.commit()
        return None
    if user.status != UserStatus.ACTIVE.value:
        return None
    return user


async def logout(db: AsyncSession, token: Optional[str]) -> None:
    if not token:
        return
    await db.execute(delete(UserSession).where(UserSession.token == token))
    await db.commit()


async def request_password_reset(db: AsyncSession, email: str, now: Optional[datetime] = None) -> Optional[PasswordResetToken]:
    """Create a reset token and email it; unknown or inactive accounts silently get nothing"""
    now = now or utc_now()
    user = await get_user_by_email(db, email)
    if user is None or user.status != UserStatus.ACTIVE.value:
        logger.info(f"Password reset requested for unknown or inactive account {email}")
        return None
    await db.execute(
        update(PasswordResetToken)
        .where(and_(PasswordResetToken.user_id == user.id, PasswordResetToken.used == False))  # noqa: E712
        .values(used=True)
    )
    reset = PasswordResetToken(
        user_id=user.id,
        token=generate_token(),
        expires_at=now + timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS),
        used=False,
    )
    db.add(reset)
    await db.commit()
    await db.refresh(reset)
    email_service.send_password_reset_email(user.email, user.name, reset.token)
    return reset


async def reset_password(db: AsyncSession, token: str, new_password: str, now: Optional[datetime] = None) -> User:
    result = await db.execute(select(PasswordResetToken).where(PasswordResetToken.token == token))
    reset = result.scalar_one_or_none()
    if reset is None or reset.used or is_token_expired(reset.expires_at, now):
        raise InvalidInputError("Invalid or expired reset token")
    user = await db.get(User, reset.user_id)
    if user is None:
        raise InvalidInputError("Invalid or expired reset token")
    user.hashed_password = get_password_hash(new_password)
    reset.used = True
    await db.execute(delete(UserSession).where(UserSession.user_id == user.id))
    await db.commit()
    logger.info(f"Password reset for user {user.id}")
    return user


async def create_invitation(db: AsyncSession, email: str, now: Optional[datetime] = None) -> InvitationToken:
    now = now or utc_now()
    invitation = InvitationToken(
        email=email.strip().lower(),
        token=generate_token(),
        expires_at=now + timedelta(hours=settings.INVITATION_EXPIRE_HOURS),
        used=False,
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)
    return invitation


async def validate_invitation(db: AsyncSession, token: str, now: Optional[datetime] = None) -> InvitationToken:
    result = await db.execute(select(InvitationToken).where(InvitationToken.token == token))
    invitation = result.scalar_one_or_none()
    if invitation is None or invitation.used or is_token_expired(invitation.expires_at, now):
        raise InvalidInputError("Invalid or expired invitation")
    return invitation


async def setup_account(
    db: AsyncSession, token: str, password: str, name: Optional[str] = None, now: Optional[datetime] = None
) -> User:
    """Accept an invitation: set the password, activate, and hand out General tasks"""
    from .catalog_service import assign_general_tasks_to_user

    invitation = await validate_invitation(db, token, now)
    user = await get_user_by_email(db, invitation.email)
    if user is None:
        raise InvalidInputError("No account found for this invitation")
    user.hashed_password = get_password_hash(password)
    user.status = UserStatus.ACTIVE.value
    if name:
        user.name = name.strip()
    invitation.used = True
    await db.commit()
    await assign_general_tasks_to_user(db, user.id)
    logger.info(f"User {user.id} completed account setup")
    return user


async def cleanup_expired_tokens(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    sessions = await db.execute(delete(UserSession).where(UserSession.expires_at < now))
    invitations = await db.execute(delete(InvitationToken).where(InvitationToken.expires_at < now))
    resets = await db.execute(delete(PasswordResetToken).where(PasswordResetToken.expires_at < now))
    await db.commit()
    counts = {
        "sessions": sessions.rowcount or 0,
        "invitations": invitations.rowcount or 0,
        "password_resets": resets.rowcount or 0,
    }
    logger.info(f"Removed expired tokens: {counts}")
    return counts
