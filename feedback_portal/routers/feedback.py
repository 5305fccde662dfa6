"""
Feedback Endpoints for the Smart Feedback Portal

GET  /api/dashboard  - verified user + rendered snapshot of their feedback
GET  /api/feedback   - raw snapshot rows, newest first
POST /api/feedback   - submission form (validate, insert as Pending)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from feedback_portal import config
from feedback_portal.api.deps import get_backend, get_forms, require_user
from feedback_portal.api.schemas import (
    DashboardResponse,
    FeedbackCreateRequest,
    FeedbackRow,
    FeedbackSnapshotResponse,
    SubmissionResponse,
)
from feedback_portal.core.errors import StoreError
from feedback_portal.domain.models import SessionUser
from feedback_portal.gateway.client import BackendClient
from feedback_portal.services.presentation import render_list
from feedback_portal.services.submission import FormRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["feedback"])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    user: SessionUser = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
):
    """Re-verify the session upstream, then render the owner's snapshot.

    A failed fetch is logged and shown as an empty list; the live channel
    fills it in as changes arrive.
    """
    verified = await backend.auth.get_user(user.access_token) if user.access_token else None
    if verified is None:
        raise HTTPException(
            status_code=401,
            detail={"message": "Session expired.", "redirect": config.LOGIN_PATH},
        )

    try:
        rows = await backend.store.select_for_owner(verified.id, verified.access_token)
    except StoreError as exc:
        logger.error("Error fetching feedback for %s: %s", verified.id, exc)
        rows = []

    return {"user": verified.public_dict(), "feedback": render_list(rows)}


@router.get("/feedback", response_model=FeedbackSnapshotResponse)
async def list_feedback(
    user: SessionUser = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
):
    rows = await backend.store.select_for_owner(user.id, user.access_token)
    return {"items": [row.model_dump(mode="json") for row in rows], "total": len(rows)}


@router.post("/feedback", response_model=SubmissionResponse, status_code=201)
async def submit_feedback(
    body: FeedbackCreateRequest,
    user: SessionUser = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
    forms: FormRegistry = Depends(get_forms),
):
    """Submit one feedback item.  The new row appears via the live channel."""
    form = forms.form_for(user, backend.store)
    try:
        result = await form.submit(body.title, body.description)
        state = form.state
    finally:
        forms.release(user.id)

    payload = SubmissionResponse(
        ok=result.ok,
        state=state.value,
        notification=result.notification.to_dict(),
        draft={"title": result.draft.title, "description": result.draft.description},
        item=FeedbackRow(**result.item.model_dump(mode="json")) if result.item else None,
    )
    return JSONResponse(payload.model_dump(), status_code=201 if result.ok else 502)
