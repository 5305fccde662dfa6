"""
Auth gateway client.

Thin async wrapper over the managed backend's auth REST API:

  POST /auth/v1/signup                     -> create account
  POST /auth/v1/token?grant_type=password  -> create session
  POST /auth/v1/logout                     -> end session
  GET  /auth/v1/user                       -> current user for a token

Every failure is raised as ``AuthGatewayError`` carrying the upstream
message verbatim; callers do not try to tell bad credentials from rate
limits or network trouble.
"""

import logging
from typing import Optional

import httpx

from feedback_portal.core.errors import AuthGatewayError
from feedback_portal.domain.models import SessionUser

logger = logging.getLogger(__name__)


def upstream_message(resp: httpx.Response) -> str:
    """Pull the human-readable error out of an auth or table API response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            val = body.get(key)
            if isinstance(val, str) and val:
                return val
    text = (resp.text or "").strip()
    return text or f"HTTP {resp.status_code}"


class AuthGateway:
    """Calls the auth API with the project's anon key."""

    def __init__(self, http: httpx.AsyncClient, base_url: str, api_key: str):
        self._http = http
        self._base = f"{base_url.rstrip('/')}/auth/v1"
        self._api_key = api_key

    def _headers(self, access_token: Optional[str] = None) -> dict:
        headers = {"apikey": self._api_key, "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(self, path: str, *, json=None, params=None, access_token=None) -> httpx.Response:
        try:
            return await self._http.post(
                f"{self._base}{path}",
                json=json,
                params=params,
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as exc:
            logger.error("Auth gateway request %s failed: %s", path, exc)
            raise AuthGatewayError(str(exc) or type(exc).__name__) from exc

    async def sign_up(self, email: str, password: str) -> dict:
        """Create an account.  Returns the upstream user object."""
        resp = await self._post("/signup", json={"email": email, "password": password})
        if resp.status_code >= 400:
            raise AuthGatewayError(upstream_message(resp), resp.status_code)
        body = resp.json() or {}
        # Depending on project settings the user is either top-level or nested.
        return body.get("user") or body

    async def sign_in(self, email: str, password: str) -> SessionUser:
        """Exchange email + password for a session."""
        resp = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if resp.status_code >= 400:
            raise AuthGatewayError(upstream_message(resp), resp.status_code)
        body = resp.json() or {}
        user = body.get("user") or {}
        if not user.get("id") or not body.get("access_token"):
            raise AuthGatewayError("Auth gateway returned an incomplete session.")
        return SessionUser(
            id=str(user["id"]),
            email=user.get("email") or email,
            access_token=body["access_token"],
        )

    async def sign_out(self, access_token: Optional[str]) -> None:
        """End the upstream session.  A token the gateway no longer knows is fine."""
        if not access_token:
            return
        resp = await self._post("/logout", access_token=access_token)
        if resp.status_code in (401, 403, 404):
            logger.debug("Sign-out for an already invalid token (HTTP %d)", resp.status_code)
            return
        if resp.status_code >= 400:
            raise AuthGatewayError(upstream_message(resp), resp.status_code)

    async def get_user(self, access_token: str) -> Optional[SessionUser]:
        """Return the user behind ``access_token``, or None if it is not valid."""
        try:
            resp = await self._http.get(f"{self._base}/user", headers=self._headers(access_token))
        except httpx.HTTPError as exc:
            logger.error("Auth gateway user lookup failed: %s", exc)
            raise AuthGatewayError(str(exc) or type(exc).__name__) from exc
        if resp.status_code in (401, 403):
            return None
        if resp.status_code >= 400:
            raise AuthGatewayError(upstream_message(resp), resp.status_code)
        user = resp.json() or {}
        if not user.get("id"):
            return None
        return SessionUser(id=str(user["id"]), email=user.get("email", ""), access_token=access_token)
