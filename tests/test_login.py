"""Tests for the login / sign-up flow and logout."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from feedback_portal.core.errors import AuthGatewayError
from feedback_portal.domain.enums import AuthMode
from feedback_portal.services.login import LoginFlow, logout


@pytest.fixture
def auth(session_user):
    gateway = MagicMock()
    gateway.sign_up = AsyncMock(return_value={"id": session_user.id})
    gateway.sign_in = AsyncMock(return_value=session_user)
    gateway.sign_out = AsyncMock(return_value=None)
    return gateway


def test_toggle_mode_flips_back_and_forth(auth):
    flow = LoginFlow(auth)
    assert flow.toggle_mode() is AuthMode.SIGN_UP
    assert flow.toggle_mode() is AuthMode.SIGN_IN


@pytest.mark.asyncio
async def test_sign_up_returns_to_sign_in_without_session(auth):
    flow = LoginFlow(auth, mode=AuthMode.SIGN_UP)

    outcome = await flow.submit("new@example.com", "secret")

    auth.sign_up.assert_awaited_once_with("new@example.com", "secret")
    auth.sign_in.assert_not_called()
    assert outcome.ok is True
    assert outcome.session is None
    assert outcome.redirect is None
    assert outcome.mode is AuthMode.SIGN_IN
    assert flow.mode is AuthMode.SIGN_IN
    assert outcome.notification.title == "Account created!"


@pytest.mark.asyncio
async def test_sign_in_redirects_to_dashboard_and_refreshes(auth, session_user):
    outcome = await LoginFlow(auth).submit("ada@example.com", "secret")

    assert outcome.ok is True
    assert outcome.session == session_user
    assert outcome.redirect == "/dashboard"
    assert outcome.refresh is True
    assert outcome.notification.title == "Welcome back!"


@pytest.mark.asyncio
async def test_email_is_normalized_before_gateway_call(auth):
    await LoginFlow(auth).submit("  \u200bAda@Example.COM\ufeff ", "secret")
    auth.sign_in.assert_awaited_once_with("ada@example.com", "secret")


@pytest.mark.asyncio
async def test_sign_in_failure_shows_upstream_message(auth):
    auth.sign_in.side_effect = AuthGatewayError("Invalid login credentials", 400)

    outcome = await LoginFlow(auth).submit("ada@example.com", "wrong")

    assert outcome.ok is False
    assert outcome.session is None
    assert outcome.notification.title == "Login failed"
    assert outcome.notification.description == "Invalid login credentials"
    assert outcome.notification.variant.value == "destructive"


@pytest.mark.asyncio
async def test_sign_up_failure_keeps_sign_up_mode(auth):
    auth.sign_up.side_effect = AuthGatewayError("User already registered", 422)
    flow = LoginFlow(auth, mode=AuthMode.SIGN_UP)

    outcome = await flow.submit("ada@example.com", "secret")

    assert outcome.ok is False
    assert outcome.notification.title == "Sign up failed"
    assert outcome.notification.description == "User already registered"
    assert flow.mode is AuthMode.SIGN_UP


@pytest.mark.asyncio
async def test_empty_upstream_message_uses_fallback(auth):
    auth.sign_in.side_effect = AuthGatewayError("", 400)
    outcome = await LoginFlow(auth).submit("ada@example.com", "secret")
    assert outcome.notification.description == "Please check your credentials and try again."


@pytest.mark.asyncio
async def test_logout_success_redirects_to_login(auth, session_user):
    outcome = await logout(auth, session_user)

    auth.sign_out.assert_awaited_once_with("access-123")
    assert outcome.ok is True
    assert outcome.redirect == "/login"
    assert outcome.refresh is True
    assert outcome.notification.title == "Logged out"


@pytest.mark.asyncio
async def test_logout_failure_keeps_session(auth, session_user):
    auth.sign_out.side_effect = AuthGatewayError("network down")

    outcome = await logout(auth, session_user)

    assert outcome.ok is False
    assert outcome.redirect is None
    assert outcome.session == session_user
    assert outcome.notification.title == "Logout failed"


@pytest.mark.asyncio
async def test_logout_without_session(auth):
    outcome = await logout(auth, None)
    auth.sign_out.assert_awaited_once_with(None)
    assert outcome.ok is True
    assert outcome.notification.title == "Logged out"
    assert outcome.session is None
