"""
Login / session flow and logout.

Both modes share one entry point: ``LoginFlow.submit(email, password)``.
Sign-up never establishes a session; it flips the flow back to sign-in so
the user logs in explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from feedback_portal import config
from feedback_portal.core.errors import AuthGatewayError
from feedback_portal.core.utils import normalize_email
from feedback_portal.domain.enums import AuthMode
from feedback_portal.domain.models import Notification, SessionUser
from feedback_portal.gateway.auth import AuthGateway

logger = logging.getLogger(__name__)

_FALLBACK_AUTH_MESSAGE = "Please check your credentials and try again."


@dataclass
class AuthOutcome:
    """What the UI should do after an auth action."""
    ok: bool
    notification: Notification
    mode: AuthMode = AuthMode.SIGN_IN
    redirect: Optional[str] = None
    # Re-fetch server-rendered state so the new session shows everywhere.
    refresh: bool = False
    session: Optional[SessionUser] = None


class LoginFlow:

    def __init__(self, auth: AuthGateway, mode: AuthMode = AuthMode.SIGN_IN):
        self._auth = auth
        self.mode = mode

    def toggle_mode(self) -> AuthMode:
        self.mode = AuthMode.SIGN_UP if self.mode is AuthMode.SIGN_IN else AuthMode.SIGN_IN
        return self.mode

    async def submit(self, email: str, password: str) -> AuthOutcome:
        clean_email = normalize_email(email)
        if clean_email != email:
            logger.debug("Email normalized from %r to %r", email, clean_email)

        try:
            if self.mode is AuthMode.SIGN_UP:
                await self._auth.sign_up(clean_email, password)
                logger.info("Account created for %s", clean_email)
                self.mode = AuthMode.SIGN_IN
                return AuthOutcome(
                    ok=True,
                    notification=Notification(
                        "Account created!", "You can now log in with your credentials."
                    ),
                    mode=self.mode,
                )

            session = await self._auth.sign_in(clean_email, password)
            logger.info("User logged in: %s (%s)", session.email, session.id)
            return AuthOutcome(
                ok=True,
                notification=Notification("Welcome back!", "You have successfully logged in."),
                mode=self.mode,
                redirect=config.DASHBOARD_PATH,
                refresh=True,
                session=session,
            )
        except AuthGatewayError as exc:
            logger.warning("Auth error (%s) for %s: %s", self.mode.value, clean_email, exc.message)
            title = "Sign up failed" if self.mode is AuthMode.SIGN_UP else "Login failed"
            return AuthOutcome(
                ok=False,
                notification=Notification.failure(title, exc.message or _FALLBACK_AUTH_MESSAGE),
                mode=self.mode,
            )


async def logout(auth: AuthGateway, session: Optional[SessionUser]) -> AuthOutcome:
    """End the session upstream.

    On failure the caller keeps the session: the user stays on the current
    page and may be holding a stale session.
    """
    try:
        await auth.sign_out(session.access_token if session else None)
    except AuthGatewayError as exc:
        logger.error("Error logging out: %s", exc.message)
        return AuthOutcome(
            ok=False,
            notification=Notification.failure(
                "Logout failed", "There was an error logging out. Please try again."
            ),
            session=session,
        )

    if session is not None:
        logger.info("User logged out: %s (%s)", session.email, session.id)
    return AuthOutcome(
        ok=True,
        notification=Notification("Logged out", "You have been successfully logged out."),
        redirect=config.LOGIN_PATH,
        refresh=True,
    )
