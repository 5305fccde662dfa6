"""
Shared FastAPI dependencies.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from feedback_portal import config
from feedback_portal.core.errors import BackendNotConfiguredError
from feedback_portal.domain.models import SessionUser
from feedback_portal.gateway.client import BackendClient
from feedback_portal.services.submission import FormRegistry
from feedback_portal.session import get_current_user


def get_backend(request: Request) -> BackendClient:
    """The process-wide backend client created in the app lifespan."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise BackendNotConfiguredError()
    return backend


def get_forms(request: Request) -> FormRegistry:
    return request.app.state.forms


def require_user(request: Request) -> SessionUser:
    user = get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"message": "Not authenticated.", "redirect": config.LOGIN_PATH},
        )
    return user
