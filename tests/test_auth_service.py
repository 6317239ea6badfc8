from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import ConflictError, InvalidInputError
from app.core.security import verify_password
from app.models.auth import InvitationToken, PasswordResetToken, UserSession
from app.services import auth_service, user_service
from app.services.auth_service import AuthenticationError

from conftest import PASSWORD, make_user


@pytest.mark.asyncio
async def test_login_creates_session(db):
    user = await make_user(db, "ann@example.com", "Ann", password=PASSWORD)
    logged_in, session = await auth_service.login(db, "  ANN@example.com ", PASSWORD)
    assert logged_in.id == user.id
    assert len(session.token) == 64
    assert (await auth_service.get_session_user(db, session.token)).id == user.id

    await auth_service.logout(db, session.token)
    assert await auth_service.get_session_user(db, session.token) is None


@pytest.mark.asyncio
async def test_login_rejects_bad_password_and_inactive(db):
    await make_user(db, "ann@example.com", password=PASSWORD)
    await make_user(db, "gone@example.com", status="inactive", password=PASSWORD)
    with pytest.raises(AuthenticationError):
        await auth_service.login(db, "ann@example.com", "nope")
    with pytest.raises(AuthenticationError, match="not active"):
        await auth_service.login(db, "gone@example.com", PASSWORD)
    with pytest.raises(AuthenticationError):
        await auth_service.login(db, "nobody@example.com", PASSWORD)


@pytest.mark.asyncio
async def test_expired_session_is_removed(db):
    user = await make_user(db, "ann@example.com")
    session = await auth_service.create_session(db, user.id, now=datetime(2020, 1, 1, tzinfo=timezone.utc))
    assert await auth_service.get_session_user(db, session.token) is None
    assert await db.get(UserSession, session.id) is None


@pytest.mark.asyncio
async def test_password_reset_flow(db):
    user = await make_user(db, "ann@example.com", "Ann", password=PASSWORD)
    _, session = await auth_service.login(db, "ann@example.com", PASSWORD)

    first = await auth_service.request_password_reset(db, "ann@example.com")
    second = await auth_service.request_password_reset(db, "ann@example.com")
    await db.refresh(first)
    assert first.used

    with pytest.raises(InvalidInputError):
        await auth_service.reset_password(db, first.token, "new-password-1")

    await auth_service.reset_password(db, second.token, "new-password-1")
    assert verify_password("new-password-1", user.hashed_password)
    assert await auth_service.get_session_user(db, session.token) is None

    with pytest.raises(InvalidInputError):
        await auth_service.reset_password(db, second.token, "another-pass-1")


@pytest.mark.asyncio
async def test_password_reset_unknown_email_is_silent(db):
    assert await auth_service.request_password_reset(db, "nobody@example.com") is None


@pytest.mark.asyncio
async def test_expired_reset_token(db):
    await make_user(db, "ann@example.com", password=PASSWORD)
    reset = await auth_service.request_password_reset(
        db, "ann@example.com", now=datetime(2020, 1, 1, tzinfo=timezone.utc)
    )
    with pytest.raises(InvalidInputError, match="Invalid or expired reset token"):
        await auth_service.reset_password(db, reset.token, "new-password-1")


@pytest.mark.asyncio
async def test_invite_and_setup_account(db):
    user = await user_service.invite_user(db, "New@Example.com", "New Person", "team_manager")
    assert user.status == "pending"
    assert user.email == "new@example.com"

    with pytest.raises(ConflictError):
        await user_service.invite_user(db, "new@example.com", "Dup")

    invitation = (await db.execute(InvitationToken.__table__.select())).fetchone()
    await auth_service.validate_invitation(db, invitation.token)

    activated = await auth_service.setup_account(db, invitation.token, "a-good-password", name="Newt Person")
    assert activated.status == "active"
    assert activated.name == "Newt Person"
    await auth_service.login(db, "new@example.com", "a-good-password")

    with pytest.raises(InvalidInputError, match="Invalid or expired invitation"):
        await auth_service.setup_account(db, invitation.token, "a-good-password")


@pytest.mark.asyncio
async def test_cleanup_expired_tokens(db):
    user = await make_user(db, "ann@example.com")
    now = datetime(2026, 1, 10, tzinfo=timezone.utc)
    await auth_service.create_session(db, user.id, now=now - timedelta(days=30))
    await auth_service.create_session(db, user.id, now=now)
    db.add(PasswordResetToken(user_id=user.id, token="r" * 64, expires_at=now - timedelta(hours=2), used=False))
    await db.commit()
    await auth_service.create_invitation(db, "x@example.com", now=now - timedelta(days=5))

    counts = await auth_service.cleanup_expired_tokens(db, now=now)
    assert counts == {"sessions": 1, "invitations": 1, "password_resets": 1}


@pytest.mark.asyncio
async def test_cleanup_expired_invitations_keeps_recent(db):
    now = datetime(2026, 1, 10, 12, tzinfo=timezone.utc)
    await auth_service.create_invitation(db, "old@example.com", now=now - timedelta(days=3))
    await auth_service.create_invitation(db, "recent@example.com", now=now - timedelta(hours=30))
    assert await user_service.cleanup_expired_invitations(db, now=now) == 1


@pytest.mark.asyncio
async def test_user_admin_updates(db):
    user = await make_user(db, "ann@example.com", "Ann", status="inactive")
    assert (await user_service.update_role(db, user.id, "team_manager")).role == "team_manager"
    with pytest.raises(InvalidInputError):
        await user_service.update_role(db, user.id, "overlord")
    with pytest.raises(InvalidInputError):
        await user_service.update_pay_rate(db, user.id, -1)
    assert float((await user_service.update_pay_rate(db, user.id, 42.5)).pay_rate) == 42.5
    assert (await user_service.update_status(db, user.id, "active")).status == "active"
    with pytest.raises(InvalidInputError):
        await user_service.resend_invite(db, user.id)

    assert [u.email for u in await user_service.search_users(db, "ANN")] == ["ann@example.com"]
    assert await user_service.list_users(db, status="pending") == []


@pytest.mark.asyncio
async def test_profile_password_change_requires_current(db):
    user = await make_user(db, "ann@example.com", password=PASSWORD)
    with pytest.raises(InvalidInputError, match="Current password is incorrect"):
        await user_service.update_profile(db, user, new_password="another-pass-1", current_password="wrong")
    await user_service.update_profile(db, user, name="Ann B", current_password=PASSWORD, new_password="another-pass-1")
    assert user.name == "Ann B"
    assert verify_password("another-pass-1", user.hashed_password)
