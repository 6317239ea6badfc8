"""Admin user management: invitations, roles, status and pay rates"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, InvalidInputError, NotFoundError
from ..core.security import VALID_ROLES, get_password_hash, verify_password
from ..models.auth import InvitationToken
from ..models.user import User, UserStatus, UserRole
from ..utils.timezone import utc_now
from . import auth_service, email_service
from .catalog_service import assign_general_tasks_to_user

logger = logging.getLogger(__name__)

INVITATION_GRACE_HOURS = 24


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(db: AsyncSession, status: Optional[str] = None) -> List[User]:
    query = select(User)
    if status:
        query = query.where(User.status == status)
    result = await db.execute(query.order_by(User.name))
    return list(result.scalars().all())


async def search_users(db: AsyncSession, term: str, limit: int = 20) -> List[User]:
    pattern = f"%{term.strip()}%"
    result = await db.execute(
        select(User)
        .where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        .order_by(User.name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def invite_user(db: AsyncSession, email: str, name: str, role: str = UserRole.USER.value) -> User:
    """Create a pending user and email an invitation link"""
    email = email.strip().lower()
    if await auth_service.get_user_by_email(db, email) is not None:
        raise ConflictError("A user with this email already exists")
    user = User(email=email, name=name.strip(), role=getattr(role, "value", role), status=UserStatus.PENDING.value)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    invitation = await auth_service.create_invitation(db, email)
    email_service.send_invitation_email(email, user.name, invitation.token)
    logger.info(f"Invited {email} as {user.role}")
    return user


async def resend_invite(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user.status != UserStatus.PENDING.value:
        raise InvalidInputError("User has already completed account setup")
    invitation = await auth_service.create_invitation(db, user.email)
    email_service.send_invitation_email(user.email, user.name, invitation.token)
    return user


async def update_role(db: AsyncSession, user_id: int, role: str) -> User:
    role = getattr(role, "value", role)
    if role not in VALID_ROLES:
        raise InvalidInputError(f"Invalid role: {role}")
    user = await get_user(db, user_id)
    user.role = role
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user_id} role set to {role}")
    return user


async def update_status(db: AsyncSession, user_id: int, status: str) -> User:
    status = getattr(status, "value", status)
    if status not in {s.value for s in UserStatus}:
        raise InvalidInputError(f"Invalid status: {status}")
    user = await get_user(db, user_id)
    user.status = status
    await db.commit()
    if status == UserStatus.ACTIVE.value:
        await assign_general_tasks_to_user(db, user.id)
    await db.refresh(user)
    logger.info(f"User {user_id} status set to {status}")
    return user


async def update_pay_rate(db: AsyncSession, user_id: int, pay_rate: Decimal) -> User:
    if pay_rate < 0:
        raise InvalidInputError("Pay rate cannot be negative")
    user = await get_user(db, user_id)
    user.pay_rate = pay_rate
    await db.commit()
    await db.refresh(user)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    name: Optional[str] = None,
    current_password: Optional[str] = None,
    new_password: Optional[str] = None,
) -> User:
    if name:
        user.name = name.strip()
    if new_password:
        if not current_password or not verify_password(current_password, user.hashed_password):
            raise InvalidInputError("Current password is incorrect")
        user.hashed_password = get_password_hash(new_password)
    await db.commit()
    await db.refresh(user)
    return user


async def cleanup_expired_invitations(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Delete invitation tokens more than a day past expiry"""
    cutoff = (now or utc_now()) - timedelta(hours=INVITATION_GRACE_HOURS)
    result = await db.execute(delete(InvitationToken).where(InvitationToken.expires_at < cutoff))
    await db.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info(f"Removed {removed} expired invitations")
    return removed
