"""
Session tokens for the Smart Feedback Portal.

After a successful sign-in the gateway's user id, email and access token
are wrapped in an HMAC-signed token.  It is accepted from:

  - Authorization: Bearer header (cross-domain SPA deployment)
  - the signed session cookie (same-origin)
  - a ``token`` query parameter (websocket handshakes, where browsers
    cannot set headers)

Configuration is read from feedback_portal.config.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Optional

from starlette.requests import HTTPConnection

from feedback_portal import config
from feedback_portal.domain.models import SessionUser


# ---------------------------------------------------------------------------
# HMAC-signed session tokens (no external JWT dependency)
# ---------------------------------------------------------------------------

def _sign(payload_bytes: bytes) -> str:
    """Create HMAC-SHA256 signature."""
    return hmac.new(config.AUTH_SECRET.encode(), payload_bytes, hashlib.sha256).hexdigest()


def create_token(user: SessionUser, expires_in: Optional[int] = None) -> str:
    """Create a signed session token for ``user``."""
    payload = {
        "sub": user.id,
        "email": user.email,
        "at": user.access_token,
        "exp": int(time.time()) + (expires_in if expires_in is not None else config.SESSION_EXPIRY_SECONDS),
    }
    payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()
    sig = _sign(payload_b64.encode())
    return f"{payload_b64}.{sig}"


def decode_token(token: str) -> Optional[SessionUser]:
    """Decode and verify a signed session token; None if invalid or expired."""
    parts = token.split(".", 1)
    if len(parts) != 2:
        return None
    payload_b64, sig = parts
    if not hmac.compare_digest(sig, _sign(payload_b64.encode())):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (ValueError, TypeError):
        return None
    if not isinstance(payload, dict) or not payload.get("sub"):
        return None
    if payload.get("exp", 0) < time.time():
        return None
    return SessionUser(
        id=str(payload["sub"]),
        email=payload.get("email") or "",
        access_token=payload.get("at"),
    )


def get_current_user(conn: HTTPConnection) -> Optional[SessionUser]:
    """Extract the current user from Bearer token, cookie or query string."""
    auth_header = conn.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        user = decode_token(auth_header[7:])
        if user:
            return user
    token = conn.cookies.get(config.SESSION_COOKIE_NAME)
    if token:
        user = decode_token(token)
        if user:
            return user
    token = conn.query_params.get("token")
    if token:
        return decode_token(token)
    return None


# ---------------------------------------------------------------------------
# Auth middleware helpers
# ---------------------------------------------------------------------------

PUBLIC_PREFIXES = (
    "/api/auth/signup",
    "/api/auth/login",
    "/api/auth/logout",
    "/api/health",
    "/docs",
    "/openapi.json",
    "/ws/",
)


def requires_auth(path: str) -> bool:
    """Return True if this request path needs authentication."""
    for prefix in PUBLIC_PREFIXES:
        if path.startswith(prefix):
            return False
    return path.startswith("/api/")
