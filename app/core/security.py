import secrets
from datetime import datetime, timezone
from typing import Optional

from passlib.context import CryptContext

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

ROLE_ADMIN = "admin"
ROLE_DEVELOPER = "developer"
ROLE_TEAM_MANAGER = "team_manager"
ROLE_USER = "user"

ROLE_HIERARCHY = {
    ROLE_ADMIN: 3,
    ROLE_DEVELOPER: 3,
    ROLE_TEAM_MANAGER: 2,
    ROLE_USER: 1,
}

VALID_ROLES = tuple(ROLE_HIERARCHY.keys())


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def generate_token() -> str:
    """Random 64-character hex token used for sessions, invitations and resets"""
    return secrets.token_hex(32)


def is_token_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= now


def role_level(role: Optional[str]) -> int:
    return ROLE_HIERARCHY.get(role or "", 0)


def has_permission(user_role: Optional[str], required_role: str) -> bool:
    return role_level(user_role) >= role_level(required_role)


def can_access_admin(role: Optional[str]) -> bool:
    return role in (ROLE_ADMIN, ROLE_DEVELOPER)


def can_view_financial_data(role: Optional[str]) -> bool:
    return role == ROLE_ADMIN


def can_manage_teams(role: Optional[str]) -> bool:
    return role in (ROLE_ADMIN, ROLE_DEVELOPER, ROLE_TEAM_MANAGER)


def can_create_teams(role: Optional[str]) -> bool:
    return can_manage_teams(role)
