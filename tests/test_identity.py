from unittest.mock import AsyncMock

import pytest

from app.services.backend import BackendError
from app.services.identity import IdentityError, IdentityProvider

TOKEN_PAYLOAD = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "token_type": "bearer",
    "user": {"id": "user-u", "email": "u@example.com"},
}


@pytest.fixture
def auth_backend():
    return AsyncMock()


@pytest.fixture
def identity(auth_backend, notifier):
    return IdentityProvider(auth_backend, notifier)


@pytest.mark.asyncio
async def test_sign_in_returns_session(identity, auth_backend, notifier):
    auth_backend.sign_in_with_password.return_value = TOKEN_PAYLOAD

    session = await identity.sign_in("u@example.com", "secret")

    assert session.user_id == "user-u"
    assert session.access_token == "access-1"
    assert session.refresh_token == "refresh-1"
    assert notifier.toasts[0].type == "success"


@pytest.mark.asyncio
async def test_sign_in_failure_toasts_and_raises(identity, auth_backend, notifier):
    auth_backend.sign_in_with_password.side_effect = BackendError(
        "Invalid login credentials", code="invalid_credentials", status=400
    )

    with pytest.raises(IdentityError):
        await identity.sign_in("u@example.com", "wrong")

    assert len(notifier.toasts) == 1
    assert "Invalid login credentials" in notifier.toasts[0].message


@pytest.mark.asyncio
async def test_sign_up_requires_username(identity, auth_backend, notifier):
    with pytest.raises(IdentityError):
        await identity.sign_up("u@example.com", "secret", "  ")

    auth_backend.sign_up.assert_not_called()
    assert notifier.toasts[0].message == "Username is required"


@pytest.mark.asyncio
async def test_sign_up_pending_confirmation(identity, auth_backend, notifier):
    auth_backend.sign_up.return_value = {"id": "user-u", "email": "u@example.com"}

    session = await identity.sign_up("u@example.com", "secret", "moviefan")

    assert session is None
    auth_backend.sign_up.assert_awaited_once_with(
        "u@example.com", "secret", data={"username": "moviefan"}
    )
    assert "confirm" in notifier.toasts[0].message


@pytest.mark.asyncio
async def test_sign_up_with_immediate_session(identity, auth_backend):
    auth_backend.sign_up.return_value = TOKEN_PAYLOAD

    session = await identity.sign_up("u@example.com", "secret", "moviefan")

    assert session.user_id == "user-u"


@pytest.mark.asyncio
async def test_current_session_requeries_backend(identity, auth_backend):
    auth_backend.get_user.return_value = {"id": "user-u", "email": "u@example.com"}

    session = await identity.current_session("access-1", "refresh-1")

    assert session.user_id == "user-u"
    auth_backend.get_user.assert_awaited_once_with("access-1")


@pytest.mark.asyncio
async def test_current_session_without_token(identity, auth_backend):
    assert await identity.current_session(None) is None
    auth_backend.get_user.assert_not_called()


@pytest.mark.asyncio
async def test_current_session_rejected_token(identity, auth_backend, notifier):
    auth_backend.get_user.side_effect = BackendError("invalid JWT", status=401)

    assert await identity.current_session("expired") is None
    assert notifier.toasts == []


@pytest.mark.asyncio
async def test_sign_out_failure_is_not_raised(identity, auth_backend, notifier, user_session):
    auth_backend.sign_out.side_effect = BackendError("Network error: refused")

    await identity.sign_out(user_session)

    assert notifier.toasts[0].type == "error"


@pytest.mark.asyncio
async def test_expired_token_is_refreshed(identity, auth_backend):
    auth_backend.get_user.side_effect = BackendError("JWT expired", status=401)
    auth_backend.refresh_session.return_value = TOKEN_PAYLOAD

    session = await identity.current_session("expired", "refresh-0")

    assert session.user_id == "user-u"
    assert session.access_token == "access-1"
    assert session.refresh_token == "refresh-1"
    auth_backend.refresh_session.assert_awaited_once_with("refresh-0")


@pytest.mark.asyncio
async def test_failed_refresh_means_signed_out(identity, auth_backend, notifier):
    auth_backend.get_user.side_effect = BackendError("JWT expired", status=401)
    auth_backend.refresh_session.side_effect = BackendError(
        "Invalid Refresh Token: Already Used", status=400
    )

    assert await identity.current_session("expired", "used") is None
    assert notifier.toasts == []


@pytest.mark.asyncio
async def test_backend_outage_does_not_refresh(identity, auth_backend):
    auth_backend.get_user.side_effect = BackendError("Network error: refused")

    assert await identity.current_session("access-1", "refresh-1") is None
    auth_backend.refresh_session.assert_not_called()
