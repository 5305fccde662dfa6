"""
Smart Feedback Portal: API request/response schemas (Pydantic).

All FastAPI endpoints that return structured data use these models, which
gives us OpenAPI documentation and a stable contract with the frontend.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared primitives
# ---------------------------------------------------------------------------

class NotificationOut(BaseModel):
    title: str
    description: str = ""
    variant: str = "default"


class UserOut(BaseModel):
    id: str
    email: str = ""


class BadgeOut(BaseModel):
    label: str
    variant: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class CredentialsRequest(BaseModel):
    """Body for sign-up and sign-in.  Email is normalized server-side."""
    email: str
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    ok: bool
    notification: NotificationOut
    mode: str = "sign_in"
    redirect: Optional[str] = None
    refresh: bool = False
    user: Optional[UserOut] = None
    # Bearer token for cross-domain clients; same-origin clients use the cookie.
    token: Optional[str] = None


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

class FeedbackCreateRequest(BaseModel):
    # Lengths are checked by the submission form so the error names the field.
    title: str = ""
    description: str = ""


class FeedbackRow(BaseModel):
    id: str
    user_id: str
    title: str
    description: str
    category: Optional[str] = None
    priority: Optional[str] = None
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DraftOut(BaseModel):
    title: str = ""
    description: str = ""


class SubmissionResponse(BaseModel):
    ok: bool
    state: str
    notification: NotificationOut
    draft: DraftOut
    item: Optional[FeedbackRow] = None


class FeedbackCard(BaseModel):
    id: str
    title: str
    description: str
    status: str
    priority: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[str] = None
    created_relative: str = ""
    badges: List[BadgeOut] = []
    in_progress: bool = False
    progress_message: Optional[str] = None


class FeedbackListResponse(BaseModel):
    items: List[FeedbackCard] = []
    total: int = 0
    empty: bool = True


class FeedbackSnapshotResponse(BaseModel):
    items: List[FeedbackRow] = []
    total: int = 0


class DashboardResponse(BaseModel):
    user: UserOut
    feedback: FeedbackListResponse


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    backend_configured: bool
    live_subscriptions: int = 0
    websocket_clients: int = 0
