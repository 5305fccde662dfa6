"""
Auth Endpoints for the Smart Feedback Portal

POST /api/auth/signup  - create an account (no session; back to sign-in)
POST /api/auth/login   - sign in, set the session cookie
POST /api/auth/logout  - sign out upstream, clear the cookie on success
GET  /api/auth/me      - current user, or 401
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from feedback_portal import config
from feedback_portal.api.deps import get_backend
from feedback_portal.api.schemas import AuthResponse, CredentialsRequest, UserOut
from feedback_portal.domain.enums import AuthMode
from feedback_portal.gateway.client import BackendClient
from feedback_portal.services.login import AuthOutcome, LoginFlow, logout as logout_flow
from feedback_portal.session import create_token, get_current_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _response(outcome: AuthOutcome, status_code: int = 200, token: Optional[str] = None) -> JSONResponse:
    body = AuthResponse(
        ok=outcome.ok,
        notification=outcome.notification.to_dict(),
        mode=outcome.mode.value,
        redirect=outcome.redirect,
        refresh=outcome.refresh,
        user=UserOut(**outcome.session.public_dict()) if outcome.session else None,
        token=token,
    )
    return JSONResponse(body.model_dump(), status_code=status_code)


@router.post("/signup", response_model=AuthResponse)
async def signup(body: CredentialsRequest, backend: BackendClient = Depends(get_backend)):
    """Create an account.  The user must then sign in explicitly."""
    flow = LoginFlow(backend.auth, mode=AuthMode.SIGN_UP)
    outcome = await flow.submit(body.email, body.password)
    return _response(outcome, 200 if outcome.ok else 400)


@router.post("/login", response_model=AuthResponse)
async def login(body: CredentialsRequest, backend: BackendClient = Depends(get_backend)):
    """Sign in and issue the session token (cookie + body)."""
    flow = LoginFlow(backend.auth, mode=AuthMode.SIGN_IN)
    outcome = await flow.submit(body.email, body.password)
    if not outcome.ok:
        return _response(outcome, 401)

    token = create_token(outcome.session)
    response = _response(outcome, token=token)
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        token,
        max_age=config.SESSION_EXPIRY_SECONDS,
        httponly=True,
        samesite="lax",
        secure=config.SECURE_COOKIES,
    )
    return response


@router.post("/logout", response_model=AuthResponse)
async def logout(request: Request, backend: BackendClient = Depends(get_backend)):
    """Sign out.  On upstream failure the cookie is kept and the user stays put."""
    session = get_current_user(request)
    outcome = await logout_flow(backend.auth, session)
    if not outcome.ok:
        return _response(outcome, 502)

    if session is not None:
        request.app.state.forms.discard(session.id)
    response = _response(outcome)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=UserOut)
async def me(request: Request):
    """Return the current logged-in user, or 401 if not authenticated."""
    user = get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    return UserOut(**user.public_dict())
