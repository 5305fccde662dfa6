"""
Process-wide backend client.

One ``BackendClient`` is created when the application starts and closed
when it stops.  Routes receive it through ``app.state.backend``; nothing
else constructs gateways, so the whole process shares one HTTP connection
pool.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from feedback_portal import config
from feedback_portal.gateway.auth import AuthGateway
from feedback_portal.gateway.realtime import ConnectFn, RealtimeClient
from feedback_portal.gateway.store import FeedbackStore

logger = logging.getLogger(__name__)


class BackendClient:
    """Bundles the auth, table and realtime clients for one backend project."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table: str = "feedback",
        schema: str = "public",
        http: Optional[httpx.AsyncClient] = None,
        realtime_connect: Optional[ConnectFn] = None,
        heartbeat_seconds: float = 30.0,
        channel: str = "feedback-changes",
    ):
        self.base_url = base_url
        self.http = http or httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS)
        self.auth = AuthGateway(self.http, base_url, api_key)
        self.store = FeedbackStore(self.http, base_url, api_key, table=table)
        self.realtime = RealtimeClient(
            base_url,
            api_key,
            table=table,
            schema=schema,
            channel=channel,
            heartbeat_seconds=heartbeat_seconds,
            connect=realtime_connect,
        )
        self.closed = False

    @classmethod
    def from_config(cls) -> "BackendClient":
        return cls(
            config.SUPABASE_URL,
            config.SUPABASE_ANON_KEY,
            table=config.FEEDBACK_TABLE,
            schema=config.FEEDBACK_SCHEMA,
            heartbeat_seconds=config.REALTIME_HEARTBEAT_SECONDS,
            channel=config.REALTIME_CHANNEL,
        )

    async def aclose(self) -> None:
        """Release every open subscription, then the HTTP pool."""
        if self.closed:
            return
        self.closed = True
        await self.realtime.close_all()
        await self.http.aclose()
        logger.info("Backend client closed.")


def create_backend_client() -> Optional[BackendClient]:
    """Build the client from config, or return None if the backend is unset."""
    if not config.backend_configured():
        logger.warning(
            "SUPABASE_URL / SUPABASE_ANON_KEY not set; auth and feedback routes will return 503."
        )
        return None
    logger.info("Connecting to backend project at %s", config.SUPABASE_URL)
    return BackendClient.from_config()
