"""
Centralized configuration for the Smart Feedback Portal.
All settings come from environment variables for 12-factor deployment.
"""

import os
import secrets


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> list:
    raw = os.environ.get(name, default)
    return [s.strip() for s in raw.split(",") if s.strip()]


# ---------------------------------------------------------------------------
# Managed backend (auth + table API + realtime)
# ---------------------------------------------------------------------------
SUPABASE_URL = os.environ.get("SUPABASE_URL", "").strip().rstrip("/")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "").strip()
FEEDBACK_TABLE = os.environ.get("FEEDBACK_TABLE", "feedback")
FEEDBACK_SCHEMA = os.environ.get("FEEDBACK_SCHEMA", "public")

# Applies to every outbound REST call made through the shared client.
HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "10"))

# Phoenix channels drop sockets that stay silent for ~60s.
REALTIME_HEARTBEAT_SECONDS = float(os.environ.get("REALTIME_HEARTBEAT_SECONDS", "30"))
REALTIME_CHANNEL = os.environ.get("REALTIME_CHANNEL", "feedback-changes")

# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
AUTH_SECRET = os.environ.get("AUTH_SECRET", "") or secrets.token_hex(32)
SESSION_EXPIRY_SECONDS = int(os.environ.get("SESSION_EXPIRY_SECONDS", str(7 * 24 * 3600)))
SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "feedback_portal_session")
SECURE_COOKIES = _env_bool("SECURE_COOKIES", False)

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
PORT = int(os.environ.get("PORT", "8001"))

# ---------------------------------------------------------------------------
# CORS: Starlette mirrors the request Origin when credentials=True + "*",
# so the default effectively allows any origin while still supporting the
# session cookie on cross-domain requests.
# ---------------------------------------------------------------------------
CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")


def backend_configured() -> bool:
    """Return True if the managed backend endpoint and key are both set."""
    return bool(SUPABASE_URL and SUPABASE_ANON_KEY)
