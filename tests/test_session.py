"""Tests for signed session tokens and path protection."""

import pytest
from starlette.requests import Request

from feedback_portal import config
from feedback_portal.session import create_token, decode_token, get_current_user, requires_auth


def _request(headers=None, query=b""):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "query_string": query})


def test_token_round_trip_keeps_access_token(session_user):
    user = decode_token(create_token(session_user))
    assert user == session_user


def test_tampered_token_is_rejected(session_user):
    token = create_token(session_user)
    payload, sig = token.split(".")
    assert decode_token(f"{payload}.{'0' * len(sig)}") is None
    assert decode_token("garbage") is None


def test_expired_token_is_rejected(session_user):
    assert decode_token(create_token(session_user, expires_in=-10)) is None


def test_user_from_bearer_header(session_user):
    request = _request({"Authorization": f"Bearer {create_token(session_user)}"})
    assert get_current_user(request).id == session_user.id


def test_user_from_cookie(session_user):
    cookie = f"{config.SESSION_COOKIE_NAME}={create_token(session_user)}"
    assert get_current_user(_request({"Cookie": cookie})).id == session_user.id


def test_user_from_query_param(session_user):
    query = f"token={create_token(session_user)}".encode()
    assert get_current_user(_request(query=query)).id == session_user.id


def test_no_credentials_is_anonymous():
    assert get_current_user(_request()) is None


@pytest.mark.parametrize("path,protected", [
    ("/api/dashboard", True),
    ("/api/feedback", True),
    ("/api/auth/me", True),
    ("/api/auth/login", False),
    ("/api/auth/signup", False),
    ("/api/health", False),
    ("/ws/feedback", False),
    ("/login", False),
])
def test_requires_auth(path, protected):
    assert requires_auth(path) is protected
