"""
Tests for the HTTP and websocket surface.

The lifespan builds no backend (SUPABASE_* is unset under test); each test
swaps in a FakeBackend on ``app.state`` after startup.
"""

import logging
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from websockets.exceptions import ConnectionClosedError

from conftest import OWNER

from feedback_portal.app import app
from feedback_portal.core import logging as portal_logging
from feedback_portal.core.errors import AuthGatewayError, StoreError
from feedback_portal.session import create_token
from feedback_portal.websocket import manager

VALID = {"title": "Login button broken", "description": "The login button does nothing on Safari."}


@pytest.fixture
def client(fake_backend):
    with TestClient(app) as c:
        app.state.backend = fake_backend
        yield c


@pytest.fixture
def auth_headers(session_user):
    return {"Authorization": f"Bearer {create_token(session_user)}"}


# ---------------------------------------------------------------------------
# Auth routes
# ---------------------------------------------------------------------------

class TestAuthRoutes:
    def test_signup_returns_to_sign_in(self, client, fake_backend):
        resp = client.post("/api/auth/signup", json={"email": " New@Example.com ", "password": "pw"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["mode"] == "sign_in"
        assert body["user"] is None
        assert body["token"] is None
        assert body["notification"]["title"] == "Account created!"
        fake_backend.auth.sign_up.assert_awaited_once_with("new@example.com", "pw")

    def test_login_sets_cookie_and_returns_token(self, client):
        resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "pw"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["redirect"] == "/dashboard"
        assert body["refresh"] is True
        assert body["user"] == {"id": OWNER, "email": "ada@example.com"}
        assert body["token"]
        assert "feedback_portal_session=" in resp.headers["set-cookie"]

    def test_login_failure_is_401_with_upstream_message(self, client, fake_backend):
        fake_backend.auth.sign_in.side_effect = AuthGatewayError("Invalid login credentials", 400)

        resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "bad"})

        assert resp.status_code == 401
        body = resp.json()
        assert body["notification"]["title"] == "Login failed"
        assert body["notification"]["description"] == "Invalid login credentials"
        assert "set-cookie" not in resp.headers

    def test_me(self, client, auth_headers):
        resp = client.get("/api/auth/me", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {"id": OWNER, "email": "ada@example.com"}

    def test_logout_clears_cookie(self, client, fake_backend, auth_headers):
        resp = client.post("/api/auth/logout", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json()["redirect"] == "/login"
        assert "feedback_portal_session=" in resp.headers["set-cookie"]
        fake_backend.auth.sign_out.assert_awaited_once_with("access-123")

    def test_logout_failure_keeps_session(self, client, fake_backend, auth_headers):
        fake_backend.auth.sign_out.side_effect = AuthGatewayError("network down")

        resp = client.post("/api/auth/logout", headers=auth_headers)

        assert resp.status_code == 502
        body = resp.json()
        assert body["ok"] is False
        assert body["notification"]["title"] == "Logout failed"
        assert body["user"] == {"id": OWNER, "email": "ada@example.com"}
        assert "set-cookie" not in resp.headers

    def test_backend_not_configured_is_503(self, client):
        app.state.backend = None
        resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "pw"})
        assert resp.status_code == 503
        assert resp.json()["notification"]["variant"] == "destructive"


# ---------------------------------------------------------------------------
# Protected routes
# ---------------------------------------------------------------------------

class TestProtectedRoutes:
    @pytest.mark.parametrize("path", ["/api/dashboard", "/api/feedback", "/api/auth/me"])
    def test_anonymous_is_rejected_with_login_redirect(self, client, path):
        resp = client.get(path)
        assert resp.status_code == 401
        assert resp.json()["detail"]["redirect"] == "/login"

    def test_dashboard_renders_snapshot(self, client, fake_backend, auth_headers, make_row):
        fake_backend.store.select_for_owner.return_value = [
            make_row("B", status="Processed", priority="High", category="Bug"),
            make_row("A"),
        ]

        resp = client.get("/api/dashboard", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["id"] == OWNER
        cards = body["feedback"]["items"]
        assert [c["id"] for c in cards] == ["B", "A"]
        assert cards[0]["badges"][1] == {"label": "High Priority", "variant": "destructive"}
        assert cards[1]["in_progress"] is True
        fake_backend.store.select_for_owner.assert_awaited_once_with(OWNER, "access-123")

    def test_dashboard_redirects_when_upstream_rejects_session(self, client, fake_backend, auth_headers):
        fake_backend.auth.get_user.return_value = None
        resp = client.get("/api/dashboard", headers=auth_headers)
        assert resp.status_code == 401
        assert resp.json()["detail"]["redirect"] == "/login"

    def test_dashboard_fetch_failure_shows_empty_list(self, client, fake_backend, auth_headers):
        fake_backend.store.select_for_owner.side_effect = StoreError("timeout")
        resp = client.get("/api/dashboard", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["feedback"] == {"items": [], "total": 0, "empty": True}

    def test_list_feedback_returns_rows(self, client, fake_backend, auth_headers, make_row):
        fake_backend.store.select_for_owner.return_value = [make_row("A")]
        resp = client.get("/api/feedback", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == "A"
        assert body["items"][0]["status"] == "Pending"


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

class TestSubmitFeedback:
    def test_success(self, client, fake_backend, auth_headers, make_row):
        fake_backend.store.insert.return_value = make_row("new")

        resp = client.post("/api/feedback", json=VALID, headers=auth_headers)

        assert resp.status_code == 201
        body = resp.json()
        assert body["ok"] is True
        assert body["state"] == "done"
        assert body["draft"] == {"title": "", "description": ""}
        assert body["item"]["id"] == "new"
        row, token = fake_backend.store.insert.await_args.args
        assert row["status"] == "Pending"
        assert row["user_id"] == OWNER
        assert token == "access-123"

    def test_validation_error_is_422_without_insert(self, client, fake_backend, auth_headers):
        resp = client.post(
            "/api/feedback",
            json={"title": "ab", "description": VALID["description"]},
            headers=auth_headers,
        )

        assert resp.status_code == 422
        body = resp.json()
        assert body["field"] == "title"
        assert body["detail"] == "Title must be between 3 and 200 characters"
        fake_backend.store.insert.assert_not_called()

    def test_store_failure_preserves_draft(self, client, fake_backend, auth_headers):
        fake_backend.store.insert.side_effect = StoreError("permission denied", 403)

        resp = client.post("/api/feedback", json=VALID, headers=auth_headers)

        assert resp.status_code == 502
        body = resp.json()
        assert body["ok"] is False
        assert body["state"] == "failed"
        assert body["draft"] == VALID
        assert body["notification"]["title"] == "Submission failed"

    def test_settled_forms_are_not_retained(self, client, fake_backend, auth_headers, make_row):
        fake_backend.store.insert.side_effect = [StoreError("timeout"), make_row("new")]

        failed = client.post("/api/feedback", json=VALID, headers=auth_headers)
        assert len(app.state.forms) == 0
        done = client.post("/api/feedback", json=VALID, headers=auth_headers)

        assert (failed.status_code, done.status_code) == (502, 201)
        assert len(app.state.forms) == 0


# ---------------------------------------------------------------------------
# Health, request logging, websocket
# ---------------------------------------------------------------------------

def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["backend_configured"] is True
    assert body["live_subscriptions"] == 0


def test_request_id_is_echoed_and_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="feedback_portal.app"):
        resp = client.get("/api/health", headers={"X-Request-ID": "req-42"})

    assert resp.headers["x-request-id"] == "req-42"
    lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("request_log ")]
    assert any('"request_id": "req-42"' in line and '"status": 200' in line for line in lines)


def test_websocket_rejects_anonymous(client):
    from starlette.websockets import WebSocketDisconnect

    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/feedback"):
            pass
    assert exc.value.code == 4401


def test_websocket_streams_list_and_releases_subscription(fake_backend, session_user, make_row):
    fake_backend.store.select_for_owner.return_value = [make_row("A")]
    token = create_token(session_user)

    with TestClient(app) as client:
        app.state.backend = fake_backend
        with client.websocket_connect(f"/ws/feedback?token={token}") as ws:
            first = ws.receive_json()
            assert first["type"] == "feedback"
            assert [c["id"] for c in first["items"]] == ["A"]

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "ack"}

    # Released exactly once, by disconnect or by shutdown.
    subs = fake_backend.realtime.subscriptions
    assert len(subs) == 1
    assert subs[0].owner_id == OWNER
    assert subs[0].close_calls == 1


def test_websocket_subscribe_failure_closes_and_unregisters(fake_backend, session_user):
    from starlette.websockets import WebSocketDisconnect

    fake_backend.realtime.subscribe = AsyncMock(side_effect=ConnectionClosedError(None, None))
    token = create_token(session_user)

    with TestClient(app) as client:
        app.state.backend = fake_backend
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/ws/feedback?token={token}") as ws:
                ws.receive_json()

    assert exc.value.code == 1011
    assert manager.client_count == 0

def test_configure_logging_quietens_client_libraries():
    portal_logging.reset_logging_for_tests()
    logging.getLogger("httpx").setLevel(logging.DEBUG)

    portal_logging.configure_logging("DEBUG")

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger().level == logging.DEBUG
    portal_logging.reset_logging_for_tests()
    portal_logging.configure_logging("INFO")
